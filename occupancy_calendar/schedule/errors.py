from datetime import date


class CalendarError(Exception):
    """Base class for errors raised while building an occupancy calendar."""


class InvalidDateRange(CalendarError):
    """
    A reservation whose check-out is not strictly after its check-in.
    Skipped by the normalizer, never fatal to the batch.
    """

    def __init__(self, reservation_id: str, check_in: date, check_out: date):
        self.reservation_id = reservation_id
        self.check_in = check_in
        self.check_out = check_out
        super().__init__(
            f"check-out {check_out.isoformat()} is not after "
            f"check-in {check_in.isoformat()}"
        )


class SerializationError(CalendarError):
    """An event cannot be written as calendar text. Aborts the whole export."""
