"""
Negotiation domain models.

WHAT: Negotiating agents, offers, and the negotiation aggregate
WHY: Consistent typing across the simulator, services, and persistence
HOW: Pydantic v2 models; agents are immutable inputs to a simulation run
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from datetime import datetime


DEFAULT_CONCESSION_RATE = 2.0  # percent of the remaining gap per round

NegotiationStatus = Literal["active", "converged", "failed", "escalated"]


class Agent(BaseModel):
    """
    A negotiating party.

    Both bounds are carried; the buyer is held to max_price and the
    seller to min_price.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    min_price: float = Field(ge=0.0)
    max_price: float = Field(ge=0.0)
    concession_rate: float | None = Field(default=None, ge=0.0, le=100.0)

    def with_default_concession(self) -> "Agent":
        """Return a copy whose concession rate is filled in."""
        if self.concession_rate:
            return self
        return self.model_copy(update={"concession_rate": DEFAULT_CONCESSION_RATE})


class Offer(BaseModel):
    """One bid in the negotiation history."""

    id: str
    agent_id: str
    agent_name: str
    price: int = Field(ge=0)
    reasoning: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    round: int = Field(ge=1)
    converged: bool = False


class Negotiation(BaseModel):
    """Bargaining over one recommendation between a buyer and a seller agent."""

    id: str
    recommendation_id: str
    buyer_agent: Agent
    seller_agent: Agent
    offers: list[Offer] = Field(default_factory=list)
    status: NegotiationStatus = "active"
    current_round: int = Field(default=0, ge=0)
    finalized_price: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != "active"

    def append_offers(self, offers: list[Offer]) -> None:
        """Append offers to the history. Existing entries are never rewritten."""
        self.offers.extend(offers)
