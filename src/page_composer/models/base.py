from pydantic import BaseModel, ConfigDict


class ModelBase(BaseModel):
    """
    Base class for all page-composer models.

    Enforces strict validation, forbids unknown fields,
    and enables assignment-time validation.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        frozen=False,
    )


PageId = str
ComponentType = str
