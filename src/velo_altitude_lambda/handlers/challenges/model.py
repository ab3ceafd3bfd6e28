from dataclasses import dataclass, field
from typing import List, Optional

from aibs_informatics_core.models.base import SchemaModel
from boto3.dynamodb.conditions import Attr, ConditionBase

from velo_altitude_lambda.handlers.model import SearchQuery


@dataclass
class ChallengeSearchQuery(SearchQuery):
    difficulty: Optional[str] = None
    region: Optional[str] = None

    def conditions(self) -> List[ConditionBase]:
        conditions = super().conditions()
        if self.difficulty:
            conditions.append(Attr("difficulty").eq(self.difficulty))
        if self.region:
            conditions.append(Attr("region").eq(self.region))
        return conditions


@dataclass
class ProgressUpdate(SchemaModel):
    """Body of `POST /challenges/{id}/progress`."""

    completed_col_ids: List[str] = field(default_factory=list)


@dataclass
class ChallengeProgressRequest(SchemaModel):
    challenge_id: str
    col_ids: List[str]
    completed_col_ids: List[str] = field(default_factory=list)


@dataclass
class ChallengeProgressResponse(SchemaModel):
    challenge_id: str
    total: int
    completed_count: int
    completed_col_ids: List[str]
    remaining_col_ids: List[str]
    percentage: int
    completed: bool
