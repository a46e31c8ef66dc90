"""
Exception hierarchy for the pod prediction pipeline.

Exception Hierarchy:
    PodPredictError (base)
    ├── RecordValidationError  - Daily record rejected at construction
    │   ├── InvalidDateError
    │   └── NegativeMetricError
    ├── TrainingError          - Fit attempt failed (fatal to that attempt)
    │   ├── NoTrainableDataError
    │   └── DegenerateFitError
    ├── ModelNotTrainedError   - Predict called before a successful fit
    ├── PersistenceError       - Prediction store rejected an append
    └── FetchError             - Upstream source could not be read
"""


class PodPredictError(Exception):
    """Base exception for all pod prediction errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class RecordValidationError(PodPredictError, ValueError):
    """A daily record violated one of its field constraints."""


class InvalidDateError(RecordValidationError):
    def __init__(self, value: object = None):
        super().__init__("invalid date", details=None if value is None else repr(value))


class NegativeMetricError(RecordValidationError):
    """
    A metric or pod count was negative (or not a finite number).

    ``field`` names the offending attribute.
    """

    def __init__(self, field: str, value: object = None):
        super().__init__(f"{field} cannot be negative", details=None if value is None else repr(value))
        self.field = field


class TrainingError(PodPredictError):
    """A training attempt failed; existing trained state is left untouched."""


class NoTrainableDataError(TrainingError):
    def __init__(self):
        super().__init__("no valid rows with FE/BE pods")


class DegenerateFitError(TrainingError):
    """The least-squares problem could not produce finite coefficients."""


class ModelNotTrainedError(PodPredictError):
    def __init__(self):
        super().__init__("model not trained")


class PersistenceError(PodPredictError):
    """Storing a prediction failed; the prediction is not recorded."""


class FetchError(PodPredictError):
    """
    Daily metrics could not be read from their source.

    Raised for whole-source failures only; individual bad rows are skipped
    by the fetchers.
    """
