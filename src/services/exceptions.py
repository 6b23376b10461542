"""Error taxonomy for the recipe ingestion pipeline.

Pipeline-aborting errors (read, extraction service, extraction parse,
persistence) are raised. Field-level data-quality errors are not raised
from extraction; they are attached to the candidate as issues.
"""


class RecipeIngestionError(Exception):
    """Base class for ingestion pipeline failures."""


class ReadError(RecipeIngestionError):
    """The uploaded image could not be read or is not an image."""


class ExtractionError(RecipeIngestionError):
    """No structured recipe was produced from the image."""


class ExtractionServiceError(ExtractionError):
    """The completion service call failed (timeout, quota, malformed reply)."""


class ExtractionParseError(ExtractionError):
    """The completion text was not a schema-conforming JSON recipe."""

    def __init__(self, message: str, raw_response: str | None = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response


class DataQualityError(RecipeIngestionError):
    """A single field of an otherwise valid candidate is unusable."""

    code = "data_quality"

    def __init__(self, field: str, value: object, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.value = value
        self.message = message


class InvalidCategoryError(DataQualityError):
    """The model picked a category id outside the supplied set."""

    code = "invalid_category"


class InvalidEnumError(DataQualityError):
    """A value is outside its closed enumeration."""

    code = "invalid_enum"


class ReconciliationError(RecipeIngestionError):
    """One ingredient could not be resolved to a catalog row."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"Could not reconcile ingredient '{name}': {message}")
        self.name = name


class PersistenceError(RecipeIngestionError):
    """A recipe write stage failed. Earlier stages are left in place."""

    def __init__(self, stage: str, message: str, recipe_id: int | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.recipe_id = recipe_id
