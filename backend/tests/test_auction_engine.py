import random
import unittest

from auction_app.services.auction_engine import (
    CUE_BID,
    CUE_SOLD,
    CUE_WARNING,
    EVENT_CHAT_MESSAGE,
    EVENT_ERROR,
    EVENT_SOUND_CUE,
    EVENT_STATE_UPDATED,
    REASON_CLOCK_IDLE,
    REASON_EMPTY_MESSAGE,
    REASON_EMPTY_POOL,
    REASON_INVALID_SETTINGS,
    REASON_INVALID_STATUS,
    REASON_NOT_HOST,
    REASON_SLOT_TAKEN,
    REASON_STALE_ROUND,
    TARGET_SENDER,
    AdvanceRound,
    ClockTick,
    EngineContext,
    JoinRoom,
    PlaceBid,
    SendChat,
    StartAuction,
    TogglePause,
    UpdateSettings,
    apply_intent,
)
from auction_app.services.auction_state import (
    ACTIVITY_BID,
    ACTIVITY_JOIN,
    ACTIVITY_SOLD,
    ACTIVITY_UNSOLD,
    MODE_MOCK,
    OUTCOME_SOLD,
    OUTCOME_UNSOLD,
    STATUS_AUCTION,
    STATUS_LOBBY,
    STATUS_RESULTS,
    STATUS_ROUND_END,
    AuctionRules,
    AuctionState,
    create_initial_state,
)
from auction_app.services.bid_validator import REASON_NOT_ACCEPTING_BIDS, REASON_UNKNOWN_FRANCHISE
from auction_app.services.catalog import ROLE_BATTER, ROLE_BOWLER, ROLE_WICKET_KEEPER, Item

NOW = 1_700_000_000_000
FRANCHISE_IDS = ["CSK", "MI", "RCB"]
POOL = (
    Item(101, "Opener One", "India", ROLE_BATTER, 200, "T1", False),
    Item(102, "Quick Two", "Australia", ROLE_BOWLER, 150, "T1", True),
    Item(103, "Keeper Three", "India", ROLE_WICKET_KEEPER, 100, "T2", False),
)


def _context(pool=POOL, seed: int = 7, **overrides) -> EngineContext:
    rules = AuctionRules(**{"timer_seconds": 10, "min_increment": 50, **overrides})
    return EngineContext(pool=pool, rules=rules, rng=random.Random(seed), clock=lambda: NOW)


def _lobby(context: EngineContext) -> AuctionState:
    return create_initial_state("ROOM1", "CSK", context.pool, FRANCHISE_IDS, context.rules)


def _running(context: EngineContext) -> AuctionState:
    transition = apply_intent(_lobby(context), StartAuction("CSK"), context)
    assert transition.accepted
    return transition.state


def _expire(state: AuctionState, context: EngineContext) -> AuctionState:
    while state.status == STATUS_AUCTION:
        state = apply_intent(state, ClockTick(state.current_player_index), context).state
    return state


def _event_names(transition) -> list[str]:
    return [event.name for event in transition.events]


def _cues(transition) -> list[str]:
    return [event.payload["cue"] for event in transition.events if event.name == EVENT_SOUND_CUE]


class JoinTests(unittest.TestCase):
    def test_initial_state_is_seeded_from_pool_and_rules(self) -> None:
        context = _context()
        state = _lobby(context)
        self.assertEqual(state.status, STATUS_LOBBY)
        self.assertEqual(state.current_bid, 200)
        self.assertEqual(state.timer, 10)
        self.assertEqual(state.min_increment, 50)
        self.assertEqual({franchise.purse for franchise in state.franchises.values()}, {12000})

    def test_join_claims_slot_and_records_activity(self) -> None:
        context = _context()
        transition = apply_intent(_lobby(context), JoinRoom("MI", "  Asha "), context)

        self.assertTrue(transition.accepted)
        self.assertEqual(transition.state.franchises["MI"].joined_by, "Asha")
        self.assertEqual(transition.state.activity[0].type, ACTIVITY_JOIN)
        self.assertEqual(transition.state.activity[0].timestamp, NOW)
        self.assertEqual(_event_names(transition), [EVENT_STATE_UPDATED])

    def test_rejoin_with_same_name_is_idempotent(self) -> None:
        context = _context()
        first = apply_intent(_lobby(context), JoinRoom("MI", "Asha"), context)
        second = apply_intent(first.state, JoinRoom("MI", "Asha"), context)

        self.assertTrue(second.accepted)
        self.assertEqual(len(second.state.activity), 1)
        self.assertEqual(second.state.franchises["MI"].joined_by, "Asha")

    def test_claimed_slot_rejects_other_name_with_private_error(self) -> None:
        context = _context()
        claimed = apply_intent(_lobby(context), JoinRoom("MI", "Asha"), context).state
        transition = apply_intent(claimed, JoinRoom("MI", "Ravi"), context)

        self.assertFalse(transition.accepted)
        self.assertEqual(transition.reason, REASON_SLOT_TAKEN)
        self.assertIs(transition.state, claimed)
        self.assertEqual(len(transition.events), 1)
        self.assertEqual(transition.events[0].name, EVENT_ERROR)
        self.assertEqual(transition.events[0].target, TARGET_SENDER)
        self.assertEqual(transition.events[0].payload["reason"], REASON_SLOT_TAKEN)

    def test_unknown_franchise_is_ignored(self) -> None:
        context = _context()
        transition = apply_intent(_lobby(context), JoinRoom("XYZ", "Asha"), context)
        self.assertFalse(transition.accepted)
        self.assertEqual(transition.reason, REASON_UNKNOWN_FRANCHISE)
        self.assertEqual(transition.events, [])


class LifecycleTests(unittest.TestCase):
    def test_only_host_can_start(self) -> None:
        context = _context()
        lobby = _lobby(context)
        for requester in ("MI", None):
            transition = apply_intent(lobby, StartAuction(requester), context)
            self.assertFalse(transition.accepted)
            self.assertEqual(transition.reason, REASON_NOT_HOST)
            self.assertEqual(transition.events, [])

        started = apply_intent(lobby, StartAuction("CSK"), context)
        self.assertTrue(started.accepted)
        self.assertEqual(started.state.status, STATUS_AUCTION)
        self.assertEqual(started.state.timer, 10)
        self.assertEqual(started.state.current_bid, 200)

    def test_start_is_rejected_outside_lobby_and_for_empty_pool(self) -> None:
        context = _context()
        running = _running(context)
        self.assertEqual(apply_intent(running, StartAuction("CSK"), context).reason, REASON_INVALID_STATUS)

        empty = _context(pool=())
        lobby = _lobby(empty)
        self.assertEqual(apply_intent(lobby, StartAuction("CSK"), empty).reason, REASON_EMPTY_POOL)

    def test_input_state_is_never_mutated(self) -> None:
        context = _context()
        running = _running(context)
        transition = apply_intent(running, PlaceBid("MI", 200), context)

        self.assertTrue(transition.accepted)
        self.assertIsNone(running.current_bidder)
        self.assertEqual(running.activity, [])
        self.assertEqual(transition.state.current_bidder, "MI")

    def test_accepted_bid_resets_clock_and_cues(self) -> None:
        context = _context()
        state = _running(context)
        for _ in range(3):
            state = apply_intent(state, ClockTick(0), context).state
        self.assertEqual(state.timer, 7)

        transition = apply_intent(state, PlaceBid("MI", 200), context)
        self.assertEqual(transition.state.timer, 10)
        self.assertEqual(transition.state.activity[0].type, ACTIVITY_BID)
        self.assertEqual(transition.state.activity[0].amount, 200)
        self.assertEqual(_event_names(transition), [EVENT_STATE_UPDATED, EVENT_SOUND_CUE])
        self.assertEqual(_cues(transition), [CUE_BID])

    def test_rejected_bid_emits_nothing(self) -> None:
        context = _context()
        transition = apply_intent(_running(context), PlaceBid("MI", 150), context)
        self.assertFalse(transition.accepted)
        self.assertEqual(transition.events, [])

    def test_warning_cue_fires_once_per_round(self) -> None:
        context = _context()
        state = _running(context)
        warnings = []
        for _ in range(9):
            transition = apply_intent(state, ClockTick(0), context)
            state = transition.state
            if CUE_WARNING in _cues(transition):
                warnings.append(state.timer)
        self.assertEqual(warnings, [5])

    def test_no_warning_when_round_is_shorter_than_mark(self) -> None:
        context = _context(timer_seconds=5)
        state = _running(context)
        transition = apply_intent(state, ClockTick(0), context)
        self.assertNotIn(CUE_WARNING, _cues(transition))

    def test_paused_clock_holds_its_value(self) -> None:
        context = _context()
        state = _running(context)
        state = apply_intent(state, ClockTick(0), context).state
        state = apply_intent(state, ClockTick(0), context).state
        state = apply_intent(state, TogglePause("MI"), context).state

        paused_tick = apply_intent(state, ClockTick(0), context)
        self.assertFalse(paused_tick.accepted)
        self.assertEqual(paused_tick.reason, REASON_CLOCK_IDLE)
        self.assertEqual(paused_tick.state.timer, 8)
        self.assertEqual(apply_intent(state, PlaceBid("MI", 200), context).reason, REASON_NOT_ACCEPTING_BIDS)

        state = apply_intent(state, TogglePause("RCB"), context).state
        state = apply_intent(state, ClockTick(0), context).state
        self.assertEqual(state.timer, 7)

    def test_stale_tick_is_rejected(self) -> None:
        context = _context()
        transition = apply_intent(_running(context), ClockTick(1), context)
        self.assertFalse(transition.accepted)
        self.assertEqual(transition.reason, REASON_STALE_ROUND)

    def test_expiry_sells_to_leader(self) -> None:
        context = _context()
        state = apply_intent(_running(context), PlaceBid("MI", 300), context).state
        for _ in range(9):
            state = apply_intent(state, ClockTick(0), context).state
        final = apply_intent(state, ClockTick(0), context)

        self.assertTrue(final.resolved_round)
        self.assertEqual(final.state.timer, 0)
        self.assertEqual(final.state.franchises["MI"].purse, 11700)
        self.assertEqual(final.state.franchises["MI"].squad, [101])
        self.assertEqual(final.state.last_outcome.status, OUTCOME_SOLD)
        self.assertEqual(final.state.last_outcome.amount, 300)
        self.assertEqual(final.state.activity[0].type, ACTIVITY_SOLD)
        self.assertEqual(_cues(final), [CUE_SOLD])

    def test_expiry_without_bids_marks_unsold(self) -> None:
        context = _context()
        state = _expire(_running(context), context)

        self.assertEqual(state.status, STATUS_ROUND_END)
        self.assertEqual(state.unsold_players, [101])
        self.assertEqual(state.last_outcome.status, OUTCOME_UNSOLD)
        self.assertIsNone(state.last_outcome.franchise_id)
        self.assertEqual(state.activity[0].type, ACTIVITY_UNSOLD)
        self.assertEqual({franchise.purse for franchise in state.franchises.values()}, {12000})

    def test_overseas_purchase_increments_counter(self) -> None:
        context = _context()
        state = _expire(_running(context), context)
        state = apply_intent(state, AdvanceRound(0), context).state
        state = apply_intent(state, PlaceBid("RCB", 150), context).state
        state = _expire(state, context)
        self.assertEqual(state.franchises["RCB"].overseas_count, 1)
        self.assertEqual(state.franchises["RCB"].squad, [102])

    def test_advance_moves_to_next_item_exactly_once(self) -> None:
        context = _context()
        ended = _expire(apply_intent(_running(context), PlaceBid("MI", 200), context).state, context)
        advanced = apply_intent(ended, AdvanceRound(0), context)

        self.assertTrue(advanced.accepted)
        self.assertEqual(advanced.state.status, STATUS_AUCTION)
        self.assertEqual(advanced.state.current_player_index, 1)
        self.assertEqual(advanced.state.current_bid, 150)
        self.assertIsNone(advanced.state.current_bidder)
        self.assertIsNone(advanced.state.last_outcome)
        self.assertEqual(advanced.state.timer, 10)

        duplicate = apply_intent(advanced.state, AdvanceRound(0), context)
        self.assertFalse(duplicate.accepted)
        self.assertEqual(duplicate.state.current_player_index, 1)

    def test_last_item_leads_to_terminal_results(self) -> None:
        context = _context(pool=POOL[:1])
        state = _expire(_running(context), context)
        results = apply_intent(state, AdvanceRound(0), context).state

        self.assertEqual(results.status, STATUS_RESULTS)
        self.assertEqual(results.timer, 0)
        for intent in (
            StartAuction("CSK"),
            PlaceBid("MI", 500),
            TogglePause("CSK"),
            ClockTick(1),
            AdvanceRound(1),
            UpdateSettings("CSK", timer_duration=20),
        ):
            with self.subTest(intent=intent):
                transition = apply_intent(results, intent, context)
                self.assertFalse(transition.accepted)
                self.assertIs(transition.state, results)


class SettingsTests(unittest.TestCase):
    def test_only_host_changes_settings(self) -> None:
        context = _context()
        lobby = _lobby(context)
        transition = apply_intent(lobby, UpdateSettings("MI", timer_duration=20), context)
        self.assertFalse(transition.accepted)
        self.assertEqual(transition.reason, REASON_NOT_HOST)
        self.assertEqual(transition.state.timer_duration, 10)

    def test_new_duration_resets_running_clock(self) -> None:
        context = _context()
        state = _running(context)
        state = apply_intent(state, ClockTick(0), context).state
        transition = apply_intent(
            state,
            UpdateSettings("CSK", min_increment=25, timer_duration=20, mode=MODE_MOCK),
            context,
        )

        self.assertTrue(transition.accepted)
        self.assertEqual(transition.state.timer_duration, 20)
        self.assertEqual(transition.state.timer, 20)
        self.assertEqual(transition.state.min_increment, 25)
        self.assertEqual(transition.state.mode, MODE_MOCK)

    def test_invalid_settings_are_rejected(self) -> None:
        context = _context()
        lobby = _lobby(context)
        for intent in (
            UpdateSettings("CSK"),
            UpdateSettings("CSK", timer_duration=3),
            UpdateSettings("CSK", timer_duration=61),
            UpdateSettings("CSK", min_increment=0),
            UpdateSettings("CSK", mode="AUCTION"),
        ):
            with self.subTest(intent=intent):
                self.assertEqual(apply_intent(lobby, intent, context).reason, REASON_INVALID_SETTINGS)


class ChatAndLogTests(unittest.TestCase):
    def test_chat_appends_and_caps_history(self) -> None:
        context = _context(chat_limit=3)
        state = _lobby(context)
        for index in range(5):
            transition = apply_intent(state, SendChat("Asha", "MI", f"message {index}"), context)
            state = transition.state

        self.assertEqual([message.text for message in state.messages], ["message 2", "message 3", "message 4"])
        self.assertEqual(_event_names(transition), [EVENT_CHAT_MESSAGE, EVENT_STATE_UPDATED])
        self.assertEqual(transition.events[0].payload["text"], "message 4")

    def test_chat_trims_and_truncates_text(self) -> None:
        context = _context(chat_max_length=10)
        lobby = _lobby(context)
        self.assertEqual(apply_intent(lobby, SendChat("Asha", "MI", "   "), context).reason, REASON_EMPTY_MESSAGE)

        state = apply_intent(lobby, SendChat("", "MI", "  abcdefghijklmnop  "), context).state
        self.assertEqual(state.messages[0].text, "abcdefghij")
        self.assertEqual(state.messages[0].sender, "MI")

    def test_activity_log_is_bounded_newest_first(self) -> None:
        context = _context(activity_limit=4)
        state = _running(context)
        amount = 200
        for bidder in ("MI", "RCB", "MI", "RCB", "MI", "RCB"):
            state = apply_intent(state, PlaceBid(bidder, amount), context).state
            amount += 50

        self.assertEqual(len(state.activity), 4)
        self.assertEqual([record.amount for record in state.activity], [450, 400, 350, 300])

    def test_record_ids_follow_injected_random_source(self) -> None:
        first = apply_intent(_lobby(_context(seed=3)), JoinRoom("MI", "Asha"), _context(seed=3))
        second = apply_intent(_lobby(_context(seed=3)), JoinRoom("MI", "Asha"), _context(seed=3))
        self.assertEqual(first.state.activity[0].id, second.state.activity[0].id)


if __name__ == "__main__":
    unittest.main()
