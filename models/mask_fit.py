from typing import Tuple
from pydantic import BaseModel, Field

from models.template import Morphology


class MaskFitResult(BaseModel):
    scale: float = Field(gt=0)
    offset_x: float = 0.0
    offset_y: float = 0.0


class MaskFit(MaskFitResult):
    session_id: str
    photo_id: str
    morphology: Morphology = Field(alias="model")
    saved_at: float = 0.0

    model_config = {"populate_by_name": True}

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.session_id, self.photo_id, self.morphology)
