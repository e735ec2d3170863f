from __future__ import annotations


class SalaaTimeError(RuntimeError):
    pass


class ConfigurationError(SalaaTimeError):
    pass


class InvalidLocationError(ConfigurationError):
    pass


class UnknownMethodError(ConfigurationError):
    pass


class NoSolarEventError(SalaaTimeError):
    """The sun never reaches the requested angle for this prayer on this date."""

    def __init__(self, key: str, detail: str | None = None) -> None:
        self.key = key
        message = f"No solar event for {key}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class IncompleteDataError(SalaaTimeError):
    def __init__(self, missing: tuple[str, ...]) -> None:
        self.missing = missing
        super().__init__(f"Missing prayer times: {', '.join(missing)}")


class OrderingError(SalaaTimeError):
    pass


class NegativeDurationError(SalaaTimeError):
    pass


class UpstreamFetchError(SalaaTimeError):
    pass
