"""
Bilateral price negotiation simulator.

WHAT: Deterministic alternating-offer bargaining between a buyer and a seller agent
WHY: Produce a settlement price for a matched load without human haggling
HOW: Concession ladder over the remaining gap, accelerated when progress stalls

Each round the buyer raises its offer by its concession rate (percent of the
remaining gap, capped at its max price) and the seller lowers its offer the
same way (floored at its min price). Once the two offers are within
CONVERGENCE_THRESHOLD a final midpoint offer is emitted. After round 10, if the
gap is still above ESCALATION_GAP, both working rates grow by 10% per round up
to MAX_CONCESSION_RATE. The run is capped at MAX_NEGOTIATION_ROUNDS and never
raises; a run that hits the cap simply ends without a converged offer.
"""

import math
from datetime import datetime

from ..models.negotiation import Agent, Negotiation, NegotiationStatus, Offer, DEFAULT_CONCESSION_RATE
from ..utils.money import round_half_up, format_rupees
from ..utils.logger import get_logger

logger = get_logger(__name__)

CONVERGENCE_THRESHOLD = 1000  # rupees
MAX_NEGOTIATION_ROUNDS = 100
ESCALATION_AFTER_ROUND = 10
ESCALATION_GAP = 5000  # rupees
ESCALATION_FACTOR = 1.1
MAX_CONCESSION_RATE = 5.0  # percent


def _make_offer(agent: Agent, price: float, round_number: int, kind: str, reasoning: list[str]) -> Offer:
    return Offer(
        id=f"offer_{round_number}_{kind}",
        agent_id=agent.id,
        agent_name=agent.name,
        price=round_half_up(price),
        reasoning=reasoning,
        timestamp=datetime.utcnow(),
        round=round_number,
        converged=(kind == "converged"),
    )


def _converged_offer(agent: Agent, buyer_offer: float, seller_offer: float, round_number: int) -> Offer:
    final_price = round_half_up((buyer_offer + seller_offer) / 2)
    return _make_offer(agent, final_price, round_number, "converged", [
        f"Agreement reached at {format_rupees(final_price)}",
        "Price difference is acceptable",
    ])


def _opening_price(value: float) -> float:
    """Clamp an opening price to a finite, non-negative amount."""
    price = float(value)
    if not math.isfinite(price):
        return 0.0
    return max(0.0, price)


def simulate_negotiation(
    buyer_agent: Agent,
    seller_agent: Agent,
    initial_buyer_price: float,
    initial_seller_price: float
) -> list[Offer]:
    """
    Run the negotiation to completion and return the full offer history.

    Args:
        buyer_agent: Buyer, bounded above by its max_price
        seller_agent: Seller, bounded below by its min_price
        initial_buyer_price: Buyer's opening bid (round 1), clamped at 0
        initial_seller_price: Seller's opening ask (round 2), clamped at 0

    Returns:
        Offers in the order they were made. Always contains the two opening
        offers; the last offer has converged=True if agreement was reached.
    """
    offers: list[Offer] = []

    buyer_offer = _opening_price(initial_buyer_price)
    seller_offer = _opening_price(initial_seller_price)
    round_number = 1

    # Working copies; the agents themselves are never mutated
    buyer_rate = buyer_agent.concession_rate or DEFAULT_CONCESSION_RATE
    seller_rate = seller_agent.concession_rate or DEFAULT_CONCESSION_RATE

    offers.append(_make_offer(buyer_agent, buyer_offer, round_number, "buyer", [
        "Initial offer based on market rates and time constraints",
        f"Current offer: {format_rupees(buyer_offer)}",
    ]))
    round_number += 1

    offers.append(_make_offer(seller_agent, seller_offer, round_number, "seller", [
        "Initial counter-offer considering fuel costs and driver hours",
        f"Current offer: {format_rupees(seller_offer)}",
    ]))
    round_number += 1

    converged = False
    while round_number <= MAX_NEGOTIATION_ROUNDS:
        if buyer_offer < seller_offer:
            buyer_offer = min(
                buyer_offer + (seller_offer - buyer_offer) * (buyer_rate / 100),
                buyer_agent.max_price
            )
            offers.append(_make_offer(buyer_agent, buyer_offer, round_number, "buyer", [
                "Increasing offer due to time window constraints",
                f"Current offer: {format_rupees(buyer_offer)}",
            ]))

        if abs(buyer_offer - seller_offer) < CONVERGENCE_THRESHOLD:
            # No midpoint offer once the buyer has met or passed the seller
            if buyer_offer < seller_offer:
                offers.append(_converged_offer(buyer_agent, buyer_offer, seller_offer, round_number))
            converged = True
            break

        if seller_offer > buyer_offer:
            seller_offer = max(
                seller_offer - (seller_offer - buyer_offer) * (seller_rate / 100),
                seller_agent.min_price
            )
            offers.append(_make_offer(seller_agent, seller_offer, round_number, "seller", [
                "Reducing price due to fuel delta and driver hours",
                f"Current offer: {format_rupees(seller_offer)}",
            ]))

        if abs(buyer_offer - seller_offer) < CONVERGENCE_THRESHOLD:
            offers.append(_converged_offer(seller_agent, buyer_offer, seller_offer, round_number))
            converged = True
            break

        if round_number > ESCALATION_AFTER_ROUND and abs(buyer_offer - seller_offer) > ESCALATION_GAP:
            buyer_rate = min(buyer_rate * ESCALATION_FACTOR, MAX_CONCESSION_RATE)
            seller_rate = min(seller_rate * ESCALATION_FACTOR, MAX_CONCESSION_RATE)

        round_number += 1

    if converged:
        logger.info(
            f"Negotiation {buyer_agent.name} vs {seller_agent.name} converged in round "
            f"{offers[-1].round} at {format_rupees(offers[-1].price)}"
        )
    else:
        logger.warning(
            f"Negotiation {buyer_agent.name} vs {seller_agent.name} hit the "
            f"{MAX_NEGOTIATION_ROUNDS}-round cap with gap {format_rupees(abs(buyer_offer - seller_offer))}"
        )

    return offers


def has_converged(offers: list[Offer]) -> bool:
    """True if the history contains the final agreement offer."""
    return any(offer.converged for offer in offers)


def finalize_price(offers: list[Offer]) -> int | None:
    """
    Settlement price: the rounded mean of the last two offers.

    A history with a single offer settles at that offer's price; an empty
    history has no price.
    """
    if not offers:
        return None
    last = offers[-1]
    second_last = offers[-2] if len(offers) > 1 else last
    return round_half_up((second_last.price + last.price) / 2)


def get_negotiation_status(negotiation: Negotiation) -> NegotiationStatus:
    """
    Derive the status of a negotiation from its offers.

    Terminal statuses are returned unchanged. An active negotiation is
    "converged" when its last two offers are within CONVERGENCE_THRESHOLD,
    otherwise it stays "active". This never yields "failed".
    """
    if negotiation.status != "active":
        return negotiation.status

    if not negotiation.offers:
        return "active"

    last_two = negotiation.offers[-2:]
    if len(last_two) == 2:
        first, second = last_two
        if abs(first.price - second.price) < CONVERGENCE_THRESHOLD:
            return "converged"

    return "active"
