"""Tests for FrontendAdapter — presentation state and computer-turn pacing.

Runs without Textual: the adapter is pure Python and update() is called
by hand in place of the UI frame timer.
"""
import pytest

from frontend_adapter import (
    KEEP_DICE_MESSAGE,
    SPEED_PRESETS,
    FrontendAdapter,
    parse_target_score,
)
from game_coordinator import GameCoordinator
from game_engine import DiceRoller, Phase, Player
from settings import DEFAULTS


class ScriptedRandom:
    """Stands in for random.Random: randint returns preset values in order."""

    def __init__(self):
        self.values = []

    def randint(self, a, b):
        return self.values.pop(0)


def make_adapter(settings=None):
    rng = ScriptedRandom()
    coord = GameCoordinator(roller=DiceRoller(rng=rng))
    adapter = FrontendAdapter(coord, settings=settings)
    adapter.script = rng.values
    return adapter


def tick(adapter, n):
    for _ in range(n):
        adapter.update()


def finish_human_turn(adapter, dice=(6, 6, 6, 6, 6)):
    adapter.script.extend(dice)
    assert adapter.do_throw()
    assert adapter.do_score()


def play_out_computer(adapter, max_ticks=500):
    for _ in range(max_ticks):
        adapter.update()
        if not adapter.computer_turn_running and adapter.phase != Phase.COMPUTER_TURN:
            return
    raise TimeoutError("computer turn did not finish")


# ── Target score parsing ─────────────────────────────────────────────────────

class TestParseTargetScore:

    @pytest.mark.parametrize("text,expected", [
        ("150", 150),
        (" 42 ", 42),
        ("10", 10),
        ("5", 10),
        ("-3", 10),
        ("abc", 101),
        ("", 101),
        ("12.5", 101),
    ])
    def test_parse(self, text, expected):
        assert parse_target_score(text) == expected


class TestTargetDialog:

    def test_open_prefills_current_target(self):
        adapter = make_adapter()
        adapter.open_target_dialog()
        assert adapter.showing_target_dialog
        assert adapter.target_text == "101"

    def test_confirm_applies_to_next_game(self):
        adapter = make_adapter()
        adapter.open_target_dialog()
        assert adapter.confirm_target_dialog("20") == 20
        assert not adapter.showing_target_dialog
        adapter.new_game()
        assert adapter.coordinator.target_score == 20
        assert adapter.target_line() == "Target: 20"

    def test_confirm_invalid_text_uses_default(self):
        adapter = make_adapter()
        adapter.open_target_dialog()
        assert adapter.confirm_target_dialog("lots") == 101

    def test_cancel_keeps_target(self):
        adapter = make_adapter()
        adapter.open_target_dialog()
        adapter.target_text = "55"
        adapter.cancel_target_dialog()
        assert adapter.target_score == 101
        assert adapter.target_text == "101"

    def test_dialog_blocks_input(self):
        adapter = make_adapter()
        adapter.open_target_dialog()
        assert adapter.do_throw() is False
        assert adapter.phase == Phase.AWAITING_THROW


# ── Human input ──────────────────────────────────────────────────────────────

class TestSelection:

    def test_cannot_select_before_throw(self):
        adapter = make_adapter()
        assert adapter.toggle_die(0) is False

    def test_toggle_after_throw(self):
        adapter = make_adapter()
        adapter.script.extend([6, 6, 1, 1, 1])
        adapter.do_throw()
        assert adapter.toggle_die(0)
        assert adapter.toggle_die(1)
        assert adapter.displayed_selection == (True, True, False, False, False)
        assert adapter.toggle_die(1)
        assert adapter.selected_dice == [True, False, False, False, False]

    def test_toggle_out_of_range(self):
        adapter = make_adapter()
        adapter.script.extend([6, 6, 1, 1, 1])
        adapter.do_throw()
        assert adapter.toggle_die(5) is False

    def test_reroll_without_selection_shows_message(self):
        adapter = make_adapter()
        adapter.script.extend([6, 6, 1, 1, 1])
        adapter.do_throw()
        assert adapter.do_reroll() is False
        assert adapter.show_keep_dice_message
        assert adapter.coordinator.rerolls_used == 0
        # selecting a die clears the message
        adapter.toggle_die(0)
        assert not adapter.show_keep_dice_message

    def test_reroll_all_selected_shows_message(self):
        adapter = make_adapter()
        adapter.script.extend([6, 6, 1, 1, 1])
        adapter.do_throw()
        for i in range(5):
            adapter.toggle_die(i)
        assert adapter.do_reroll() is False
        assert adapter.show_keep_dice_message

    def test_selection_locks_after_first_reroll(self):
        adapter = make_adapter()
        adapter.script.extend([6, 6, 1, 1, 1, 2, 3, 4])
        adapter.do_throw()
        adapter.toggle_die(0)
        adapter.toggle_die(1)
        assert adapter.reroll_label() == "Reroll Non-Kept Dice"
        assert adapter.do_reroll()
        assert not adapter.can_select_dice
        assert adapter.toggle_die(2) is False
        assert adapter.displayed_selection == (True, True, False, False, False)
        assert adapter.reroll_label() == "Reroll Kept Dice"
        assert adapter.turn_total_line() == "Current Turn Total: 36"

    def test_second_reroll_commits_turn(self):
        adapter = make_adapter()
        adapter.script.extend([6, 6, 1, 1, 1, 2, 3, 4, 1, 2])
        adapter.do_throw()
        adapter.toggle_die(0)
        adapter.toggle_die(1)
        adapter.do_reroll()
        assert adapter.do_reroll()
        assert adapter.phase == Phase.COMPUTER_TURN
        assert adapter.score_line() == "H: 48 / C: 0"

    def test_score_hands_over_to_computer(self):
        adapter = make_adapter()
        finish_human_turn(adapter)
        assert adapter.phase == Phase.COMPUTER_TURN
        assert adapter.human_input_allowed is False
        assert adapter.do_throw() is False


# ── Computer pacing ──────────────────────────────────────────────────────────

class TestComputerPacing:

    def test_first_step_shown_immediately(self):
        adapter = make_adapter()
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        adapter.update()
        assert adapter.computer_turn_running
        assert adapter.computer_log == ["First roll: 6, 6, 6, 5, 5 = 28"]

    def test_later_steps_wait_for_delay(self):
        adapter = make_adapter()
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        adapter.update()
        delay = SPEED_PRESETS["normal"]
        tick(adapter, delay - 1)
        assert len(adapter.computer_log) == 1
        tick(adapter, 1)
        assert adapter.computer_log[-1] == "Decided not to reroll #1"
        assert adapter.computer_reason
        # score not banked until the final step
        assert adapter.coordinator.get_match_state().computer_score == 0
        tick(adapter, delay)
        assert adapter.computer_log[-1] == "Final total: 28"
        assert not adapter.computer_turn_running
        assert adapter.phase == Phase.AWAITING_THROW
        assert adapter.score_line() == "H: 30 / C: 28"

    def test_fast_speed_uses_fewer_frames(self):
        adapter = make_adapter()
        adapter.change_speed(+1)
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        tick(adapter, 1 + 2 * SPEED_PRESETS["fast"])
        assert adapter.phase == Phase.AWAITING_THROW

    def test_update_idle_outside_computer_turn(self):
        adapter = make_adapter()
        tick(adapter, 100)
        assert adapter.computer_log == []
        assert adapter.phase == Phase.AWAITING_THROW

    def test_game_over_flag(self):
        adapter = make_adapter()
        adapter.coordinator.scores[Player.HUMAN] = 80
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        play_out_computer(adapter)
        assert adapter.showing_game_over
        assert adapter.result_title() == "You Win!"
        assert adapter.final_score_line() == "Final Score - H: 110 / C: 28"
        adapter.dismiss_game_over()
        assert not adapter.showing_game_over

    def test_abandon_mid_computer_turn(self):
        adapter = make_adapter()
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        adapter.update()
        before = adapter.coordinator.get_match_state()
        adapter.abandon_match()
        assert not adapter.computer_turn_running
        assert adapter.coordinator.get_match_state() == before
        assert adapter.computer_log == []

    def test_new_game_resets_view(self):
        adapter = make_adapter()
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        adapter.update()
        state = adapter.new_game()
        assert state.phase == Phase.AWAITING_THROW
        assert state.human_score == 0
        assert adapter.computer_log == []
        assert not adapter.computer_turn_running


# ── Tie-break ────────────────────────────────────────────────────────────────

class TestTieBreak:

    def _reach_tie_break(self, adapter):
        adapter.coordinator.scores[Player.HUMAN] = 75
        adapter.coordinator.scores[Player.COMPUTER] = 75
        finish_human_turn(adapter)
        adapter.script.extend([6, 6, 6, 5, 5])
        play_out_computer(adapter)
        assert adapter.phase == Phase.TIE_BREAK

    def test_tie_break_not_game_over_yet(self):
        adapter = make_adapter()
        self._reach_tie_break(adapter)
        assert not adapter.showing_game_over
        assert adapter.tie_break_line() == ""

    def test_equal_roll_keeps_tie_break(self):
        adapter = make_adapter()
        self._reach_tie_break(adapter)
        adapter.script.extend([3] * 10)
        assert adapter.do_tie_break()
        assert adapter.phase == Phase.TIE_BREAK
        assert not adapter.showing_game_over
        assert adapter.tie_break_line() == "Tie Roll - H: 15 / C: 15"

    def test_decided_roll_ends_game(self):
        adapter = make_adapter()
        self._reach_tie_break(adapter)
        adapter.script.extend([1] * 5 + [2] * 5)
        adapter.do_tie_break()
        assert adapter.showing_game_over
        assert adapter.result_title() == "You Lose!"

    def test_tie_break_only_in_phase(self):
        adapter = make_adapter()
        assert adapter.do_tie_break() is False


# ── Settings and speed ───────────────────────────────────────────────────────

class TestSettings:

    def test_defaults(self):
        adapter = make_adapter()
        assert adapter.speed_name == "normal"
        assert adapter.computer_delay == SPEED_PRESETS["normal"]
        assert adapter.dark_mode is False

    def test_apply_settings(self):
        settings = dict(DEFAULTS, target_score=40, speed="slow", dark_mode=True)
        adapter = make_adapter(settings)
        assert adapter.target_score == 40
        assert adapter.speed_name == "slow"
        assert adapter.computer_delay == SPEED_PRESETS["slow"]
        assert adapter.dark_mode is True

    def test_change_speed_limits(self):
        adapter = make_adapter()
        assert adapter.change_speed(+1) is True
        assert adapter.speed_name == "fast"
        assert adapter.change_speed(+1) is False
        assert adapter.change_speed(-1) is True
        assert adapter.change_speed(-1) is True
        assert adapter.speed_name == "slow"
        assert adapter.change_speed(-1) is False

    def test_toggle_dark_mode(self):
        adapter = make_adapter()
        adapter.toggle_dark_mode()
        assert adapter.dark_mode is True


def test_keep_message_text():
    assert "1 and 4" in KEEP_DICE_MESSAGE
