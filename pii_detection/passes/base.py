"""
Detection pass interface.

A pass takes the current entity list plus the per-run context and returns
a new list. Passes run in ascending `order`; a disabled pass is skipped.
"""
from abc import ABC, abstractmethod
from typing import List

from pii_detection.models.entity import Entity
from pii_detection.models.pipeline import PipelineContext


class DetectionPass(ABC):
    name: str = "base"
    order: int = 0

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    @abstractmethod
    def execute(self, entities: List[Entity], context: PipelineContext) -> List[Entity]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, order={self.order}, enabled={self.enabled})"
