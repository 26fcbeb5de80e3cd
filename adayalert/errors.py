"""A-Day Alert — error types shared across the pipeline."""


class DataUnavailableError(Exception):
    """Upstream candle or quote fetch returned too little data.

    Inside the Strategy Engine it becomes a neutral reason and a null
    signal. Raised by the day classifier, it leaves the engine idle.
    """


class DetectorTimeoutError(Exception):
    """A detector exceeded its per-tick time budget."""
