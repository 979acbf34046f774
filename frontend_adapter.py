"""FrontendAdapter — Presentation state for Dice Duel front-ends.

Owns everything the engine must not know about: which dice the player has
selected, dialog visibility, the target-score text being edited, the
computer's visible strategy log, and the pacing of the computer's turn.
Pure Python — no Textual dependency.

A front-end creates a FrontendAdapter wrapping a GameCoordinator, calls
update() from its frame timer, and forwards key presses to the do_* methods.
"""

import logging

from game_engine import (
    DEFAULT_TARGET_SCORE,
    MIN_TARGET_SCORE,
    NUM_DICE,
    GameError,
    InvalidSelection,
    Phase,
    Player,
)
from settings import SPEED_NAMES

logger = logging.getLogger(__name__)

# Frames between computer decisions at the 20 FPS UI tick
SPEED_PRESETS = {
    "slow": 30,
    "normal": 20,
    "fast": 6,
}

KEEP_DICE_MESSAGE = "Keep between 1 and 4 dice before rerolling"


def parse_target_score(text) -> int:
    """Turn the target-score dialog text into a target.

    Anything that is not a whole number falls back to the default target;
    numbers below the minimum are raised to it.
    """
    try:
        value = int(str(text).strip())
    except ValueError:
        value = DEFAULT_TARGET_SCORE
    return max(MIN_TARGET_SCORE, value)


class FrontendAdapter:
    """View-model for a Dice Duel front-end.

    Wraps a GameCoordinator. Every field here is presentation-only; match
    state is always read back from the coordinator.
    """

    def __init__(self, coordinator, settings=None):
        self.coordinator = coordinator

        # Dice selection for the first reroll
        self.selected_dice = [False] * NUM_DICE
        self.show_keep_dice_message = False

        # Dialogs
        self.showing_target_dialog = False
        self.target_text = ""
        self.showing_about = False
        self.showing_game_over = False

        # Menu preference used by the next new_game()
        self.target_score = coordinator.target_score

        # Computer turn playback
        self.speed_name = "normal"
        self.computer_delay = SPEED_PRESETS[self.speed_name]
        self.computer_timer = 0
        self.computer_log = []
        self.computer_reason = ""
        self._computer_steps = None

        self.dark_mode = False

        if settings is not None:
            self.apply_settings(settings)

    # ── Settings ──────────────────────────────────────────────────────────

    def apply_settings(self, settings):
        """Apply a loaded settings dict."""
        self.target_score = settings.get("target_score", self.target_score)
        self.dark_mode = settings.get("dark_mode", False)
        speed = settings.get("speed", "normal")
        if speed in SPEED_PRESETS:
            self.speed_name = speed
            self.computer_delay = SPEED_PRESETS[speed]

    def change_speed(self, direction):
        """Change computer playback speed. direction=+1 for faster, -1 for slower.

        Returns True if speed actually changed, False if already at limit.
        """
        idx = SPEED_NAMES.index(self.speed_name)
        new_idx = idx + direction
        if 0 <= new_idx < len(SPEED_NAMES):
            self.speed_name = SPEED_NAMES[new_idx]
            self.computer_delay = SPEED_PRESETS[self.speed_name]
            return True
        return False

    def toggle_dark_mode(self):
        self.dark_mode = not self.dark_mode

    # ── Dialogs ───────────────────────────────────────────────────────────

    def open_target_dialog(self):
        self.target_text = str(self.target_score)
        self.showing_target_dialog = True

    def confirm_target_dialog(self, text=None):
        """Apply the dialog text as the new target. Returns the target."""
        if text is not None:
            self.target_text = text
        self.target_score = parse_target_score(self.target_text)
        self.showing_target_dialog = False
        return self.target_score

    def cancel_target_dialog(self):
        self.target_text = str(self.target_score)
        self.showing_target_dialog = False

    def toggle_about(self):
        self.showing_about = not self.showing_about

    def dismiss_game_over(self):
        self.showing_game_over = False

    # ── Match control ─────────────────────────────────────────────────────

    def _reset_view(self):
        self._stop_computer_playback()
        self.selected_dice = [False] * NUM_DICE
        self.show_keep_dice_message = False
        self.showing_game_over = False
        self.computer_timer = 0
        self.computer_log = []
        self.computer_reason = ""

    def new_game(self):
        """Start a match to the current target."""
        self._reset_view()
        return self.coordinator.start_match(self.target_score)

    def abandon_match(self):
        """Leave the match (back to menu). Any computer turn in flight is discarded."""
        self._reset_view()
        logger.info("Match abandoned at %s", self.coordinator.get_match_state())

    # ── Human input ───────────────────────────────────────────────────────

    @property
    def phase(self):
        return self.coordinator.phase

    @property
    def can_select_dice(self):
        """Selection is only open between the throw and the first reroll."""
        return (self.phase == Phase.AWAITING_HUMAN_DECISION
                and self.coordinator.rerolls_used == 0)

    @property
    def human_input_allowed(self):
        return (self.phase in (Phase.AWAITING_THROW, Phase.AWAITING_HUMAN_DECISION, Phase.TIE_BREAK)
                and not self.showing_target_dialog and not self.showing_about)

    @property
    def displayed_selection(self):
        """Selection to highlight: live while choosing, locked after the first reroll."""
        if self.can_select_dice:
            return tuple(self.selected_dice)
        locked = self.coordinator.selected_mask
        if locked is not None and self.phase == Phase.AWAITING_HUMAN_DECISION:
            return locked
        return (False,) * NUM_DICE

    def toggle_die(self, index):
        """Toggle keep selection on a die. Returns True if it changed."""
        if not self.can_select_dice or not 0 <= index < NUM_DICE:
            return False
        self.selected_dice[index] = not self.selected_dice[index]
        self.show_keep_dice_message = False
        return True

    def do_throw(self):
        if not self.human_input_allowed:
            return False
        try:
            self.coordinator.human_throw()
        except GameError:
            logger.debug("Throw rejected in %s", self.phase, exc_info=True)
            return False
        self.selected_dice = [False] * NUM_DICE
        self.show_keep_dice_message = False
        return True

    def do_reroll(self):
        """Reroll with the current selection. Returns True if dice were rolled."""
        if not self.human_input_allowed:
            return False
        mask = tuple(self.selected_dice) if self.coordinator.rerolls_used == 0 else None
        try:
            self.coordinator.human_reroll(mask)
        except InvalidSelection:
            self.show_keep_dice_message = True
            return False
        except GameError:
            logger.debug("Reroll rejected in %s", self.phase, exc_info=True)
            return False
        self.show_keep_dice_message = False
        return True

    def do_score(self):
        if not self.human_input_allowed:
            return False
        try:
            self.coordinator.human_score()
        except GameError:
            logger.debug("Score rejected in %s", self.phase, exc_info=True)
            return False
        self.show_keep_dice_message = False
        return True

    def do_tie_break(self):
        if self.phase != Phase.TIE_BREAK:
            return False
        result = self.coordinator.resolve_tie_break()
        if result.winner is not None:
            self.showing_game_over = True
        return True

    # ── Frame update ──────────────────────────────────────────────────────

    def update(self):
        """Advance one frame. Plays the computer's turn one step at a time.

        The opening throw is shown as soon as the computer's turn starts;
        every later decision waits computer_delay frames.
        """
        if self.phase != Phase.COMPUTER_TURN:
            return
        if self._computer_steps is None:
            self.computer_log = []
            self.computer_reason = ""
            self.computer_timer = 0
            self._computer_steps = self.coordinator.run_computer_turn()
            self._advance_computer()
            return
        self.computer_timer += 1
        if self.computer_timer >= self.computer_delay:
            self.computer_timer = 0
            self._advance_computer()

    def _advance_computer(self):
        step = next(self._computer_steps, None)
        if step is None:
            self._computer_steps = None
            return
        self.computer_log.extend(step.messages)
        if step.reason:
            self.computer_reason = step.reason
        if step.is_final:
            self._stop_computer_playback()
            if self.coordinator.is_game_over:
                self.showing_game_over = True

    def _stop_computer_playback(self):
        if self._computer_steps is not None:
            self._computer_steps.close()
            self._computer_steps = None

    @property
    def computer_turn_running(self):
        return self._computer_steps is not None

    # ── Display text ──────────────────────────────────────────────────────

    def target_line(self):
        return f"Target: {self.coordinator.target_score}"

    def score_line(self):
        state = self.coordinator.get_match_state()
        return f"H: {state.human_score} / C: {state.computer_score}"

    def turn_total_line(self):
        """Running total of the human's turn, or '' when nothing to show."""
        turn = self.coordinator.current_turn
        if (self.phase != Phase.AWAITING_HUMAN_DECISION or turn is None
                or turn.player is not Player.HUMAN):
            return ""
        return f"Current Turn Total: {turn.running_total}"

    def reroll_label(self):
        if self.coordinator.rerolls_used == 0:
            return "Reroll Non-Kept Dice"
        return "Reroll Kept Dice"

    def tie_break_line(self):
        result = self.coordinator.last_tie_break
        if result is None:
            return ""
        return f"Tie Roll - H: {result.human_total} / C: {result.computer_total}"

    def status_line(self):
        phase = self.phase
        if phase == Phase.AWAITING_THROW:
            return "Your turn: throw the dice"
        if phase == Phase.AWAITING_HUMAN_DECISION:
            if self.can_select_dice:
                return "Select 1-4 dice to keep, then reroll or score"
            return "Reroll the kept dice or score"
        if phase == Phase.COMPUTER_TURN:
            return "Computer is playing..."
        if phase == Phase.TIE_BREAK:
            return "Both players reached the target: roll for the tie-break"
        return "Game over"

    def result_title(self):
        state = self.coordinator.get_match_state()
        if state.winner is Player.HUMAN:
            return "You Win!"
        if state.winner is Player.COMPUTER:
            return "You Lose!"
        return ""

    def final_score_line(self):
        state = self.coordinator.get_match_state()
        return f"Final Score - H: {state.human_score} / C: {state.computer_score}"
