from dataclasses import dataclass

from auction_app.services.auction_state import STATUS_AUCTION, AuctionRules, AuctionState
from auction_app.services.catalog import Item

REASON_UNKNOWN_FRANCHISE = "unknown_franchise"
REASON_INVALID_AMOUNT = "invalid_amount"
REASON_NOT_ACCEPTING_BIDS = "not_accepting_bids"
REASON_ALREADY_LEADING = "already_leading"
REASON_BELOW_MINIMUM = "below_minimum"
REASON_INSUFFICIENT_PURSE = "insufficient_purse"
REASON_SQUAD_FULL = "squad_full"
REASON_OVERSEAS_LIMIT = "overseas_limit"


@dataclass(frozen=True)
class BidDecision:
    accepted: bool
    reason: str | None = None


ACCEPT = BidDecision(accepted=True)


def _reject(reason: str) -> BidDecision:
    return BidDecision(accepted=False, reason=reason)


def required_bid(state: AuctionState) -> int:
    """Smallest amount the next bid may carry.

    The opening bid may sit exactly on the base price; every later bid has to
    clear the standing bid by the room's minimum increment.
    """
    if state.current_bidder:
        return state.current_bid + state.min_increment
    return state.current_bid


def validate_bid(
    state: AuctionState,
    franchise_id: str,
    amount: int,
    pool: tuple[Item, ...],
    rules: AuctionRules,
) -> BidDecision:
    franchise = state.franchises.get(franchise_id)
    if franchise is None:
        return _reject(REASON_UNKNOWN_FRANCHISE)
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        return _reject(REASON_INVALID_AMOUNT)

    if state.status != STATUS_AUCTION or state.is_paused:
        return _reject(REASON_NOT_ACCEPTING_BIDS)
    if state.current_player_index >= len(pool):
        return _reject(REASON_NOT_ACCEPTING_BIDS)
    if franchise_id == state.current_bidder:
        return _reject(REASON_ALREADY_LEADING)
    if amount < required_bid(state):
        return _reject(REASON_BELOW_MINIMUM)
    if franchise.purse < amount:
        return _reject(REASON_INSUFFICIENT_PURSE)
    if len(franchise.squad) >= rules.squad_cap:
        return _reject(REASON_SQUAD_FULL)
    item = pool[state.current_player_index]
    if item.overseas and franchise.overseas_count >= rules.overseas_cap:
        return _reject(REASON_OVERSEAS_LIMIT)
    return ACCEPT
