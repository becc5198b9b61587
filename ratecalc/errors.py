from typing import List, Optional


class RateCalculatorError(Exception):
    """Base for every error the calculator reports back to a caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---- user input ----
class MissingField(RateCalculatorError):
    pass


class InvalidWeight(RateCalculatorError):
    pass


# ---- upstream ----
class ServiceNotConfigured(RateCalculatorError):
    status_code = 503


# ---- data ----
class RateNotFound(RateCalculatorError):
    def __init__(self, message: str, available: Optional[List[str]] = None):
        super().__init__(message)
        self.available = available or []


class WeightExceedsLimit(RateCalculatorError):
    def __init__(self, message: str, limit: float, unit: str):
        super().__init__(message)
        self.limit = limit
        self.unit = unit


class NoBandMatch(RateCalculatorError):
    pass
