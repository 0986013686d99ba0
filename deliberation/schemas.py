from typing import List, Literal
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and dumps camelCase keys, as exchanged with the forum app."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Post(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str
    approved: bool = False


class Evaluation(CamelModel):
    post_id: str
    evaluator_id: str
    rating: Literal["+", "-"]


class ConsensusItem(CamelModel):
    post_id: str
    post: Post
    consensus_score: float
    overall_agree_percentage: int


class RepresentativeComment(CamelModel):
    post_id: str
    post: Post
    representativeness_score: float
    z_score: float
    p_value: float
    adjusted_p_value: float
    vote_type: Literal["agree", "disagree"]
    agree_ratio: float
    disagree_ratio: float


class GroupConsensusData(CamelModel):
    group_id: int
    comments: List[RepresentativeComment]


class ConsensusAnalysisResult(CamelModel):
    group_aware_consensus: List[ConsensusItem] = []
    group_representative_comments: List[GroupConsensusData] = []

    def is_empty(self) -> bool:
        return not self.group_aware_consensus and not self.group_representative_comments
