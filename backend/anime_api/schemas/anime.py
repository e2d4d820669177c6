from pydantic import BaseModel, ConfigDict

from ..domain.anime import Anime


class AnimeWrite(BaseModel):
    """Request body for create and update.

    ``name`` is optional here so that an empty or missing name reaches the
    service and is reported as a validation error rather than a schema error.
    ``id`` is accepted and ignored: the store assigns ids and the path names
    the record on update.
    """
    id: int | None = None
    name: str | None = None

    def to_domain(self) -> Anime:
        return Anime(name=self.name or "")


class AnimeRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)
