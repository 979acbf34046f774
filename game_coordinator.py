"""
GameCoordinator — Match controller for Dice Duel.

Owns the match state and alternates turns: the human plays a turn through
explicit calls (throw, reroll, score), then the computer plays a turn that is
exposed as a lazy sequence of steps, then the round is evaluated. Pacing and
every other presentation concern live in frontend_adapter.py; nothing in here
waits on a timer.
"""
from __future__ import annotations

import inspect
import logging
from typing import Iterator

from ai import ComputerStrategy, ComputerTurnStep, ValueBasedStrategy, play_computer_turn
from game_engine import (
    DEFAULT_TARGET_SCORE,
    DiceRoller,
    InvalidPhase,
    InvalidSelection,
    MatchState,
    Phase,
    Player,
    TieBreakRoll,
    TurnEngine,
    TurnRecord,
    decide_round_outcome,
    roll_tie_break,
    validate_keep_mask,
    validate_target_score,
)
from game_log import GameLog

logger = logging.getLogger(__name__)


class GameCoordinator:
    """Runs one match at a time between a human and the computer.

    The UI reads get_match_state() and the turn accessors to decide what to
    render, and calls the human_* methods in response to input.
    """

    def __init__(self, target_score: int = DEFAULT_TARGET_SCORE,
                 strategy: ComputerStrategy | None = None,
                 roller: DiceRoller | None = None) -> None:
        """Initialize the coordinator and start a match.

        Args:
            target_score: Score to reach to win (at least 10).
            strategy: Computer decision policy. Defaults to ValueBasedStrategy.
            roller: Dice source. Defaults to an unseeded DiceRoller.
        """
        self.strategy = strategy or ValueBasedStrategy()
        self.roller = roller or DiceRoller()
        self.game_log = GameLog()
        self._computer_steps = None
        self.start_match(target_score)

    # ── Match lifecycle ───────────────────────────────────────────────────

    def start_match(self, target_score: int) -> MatchState:
        """Reset scores and start a new match to target_score.

        A computer turn still in flight from the previous match is discarded.
        """
        target_score = validate_target_score(target_score)
        self._close_computer_steps()
        self.target_score = target_score
        self.scores = {Player.HUMAN: 0, Player.COMPUTER: 0}
        self.phase = Phase.AWAITING_THROW
        self.winner = None
        self.round_number = 1
        self.last_tie_break = None
        self.current_turn = None
        self.game_log.clear()
        logger.info("Match started, target %d", self.target_score)
        return self.get_match_state()

    def get_match_state(self) -> MatchState:
        """Read-only snapshot of the match."""
        return MatchState(
            human_score=self.scores[Player.HUMAN],
            computer_score=self.scores[Player.COMPUTER],
            target_score=self.target_score,
            phase=self.phase,
            winner=self.winner,
            round_number=self.round_number,
            last_tie_break=self.last_tie_break,
        )

    # ── Properties (for renderers) ────────────────────────────────────────

    @property
    def dice(self) -> tuple[int, ...]:
        """Dice of the current (or most recent) turn."""
        return self.current_turn.dice if self.current_turn else ()

    @property
    def turn_record(self) -> TurnRecord | None:
        return self.current_turn.record if self.current_turn else None

    @property
    def rerolls_used(self) -> int:
        return self.current_turn.rerolls_used if self.current_turn else 0

    @property
    def current_player(self) -> Player | None:
        if self.phase in (Phase.AWAITING_THROW, Phase.AWAITING_HUMAN_DECISION):
            return Player.HUMAN
        if self.phase == Phase.COMPUTER_TURN:
            return Player.COMPUTER
        return None

    @property
    def is_game_over(self) -> bool:
        return self.phase == Phase.COMPLETE

    @property
    def selected_mask(self) -> tuple[bool, ...] | None:
        """Keep mask locked in by the human's first reroll, if any."""
        if self.current_turn is None or self.current_turn.player is not Player.HUMAN:
            return None
        return self.current_turn.record.first_keep_mask

    @property
    def human_can_reroll(self) -> bool:
        return (self.phase == Phase.AWAITING_HUMAN_DECISION
                and self.current_turn is not None and self.current_turn.can_reroll)

    # ── Human turn ────────────────────────────────────────────────────────

    def _require_phase(self, phase: Phase, action: str) -> None:
        if self.phase != phase:
            raise InvalidPhase(f"Cannot {action} during {self.phase.value}")

    def human_throw(self) -> tuple[int, ...]:
        """Throw all five dice to open the human's turn."""
        self._require_phase(Phase.AWAITING_THROW, "throw")
        turn = TurnEngine(Player.HUMAN, self.roller)
        dice = turn.throw()
        self.current_turn = turn
        self.phase = Phase.AWAITING_HUMAN_DECISION
        self.game_log.log_roll(self.round_number, Player.HUMAN, dice)
        return dice

    def human_reroll(self, keep_mask=None) -> tuple[int, ...]:
        """Reroll for the human.

        First reroll: keep_mask marks the 1-4 dice to keep. Second reroll: the
        selection is locked, so the stored mask is reused (rerolling the dice
        kept the first time). The turn commits by itself after the second
        reroll.
        """
        self._require_phase(Phase.AWAITING_HUMAN_DECISION, "reroll")
        turn = self.current_turn
        reroll_number = turn.rerolls_used + 1
        if reroll_number == 2 and keep_mask is not None:
            if validate_keep_mask(keep_mask) != turn.record.first_keep_mask:
                raise InvalidSelection("Dice selection is locked after the first reroll")
            keep_mask = None

        previous = turn.dice
        dice = turn.reroll(keep_mask)
        self.game_log.log_reroll(self.round_number, Player.HUMAN, reroll_number, previous,
                                 turn.record.first_keep_mask, dice, turn.running_total)
        if turn.is_finished:
            self._commit_human_turn()
        return dice

    def human_score(self) -> int:
        """End the human's turn now and bank the running total."""
        self._require_phase(Phase.AWAITING_HUMAN_DECISION, "score")
        self.current_turn.score()
        return self._commit_human_turn()

    def abandon_turn(self) -> None:
        """Throw away the human's turn in progress. Scores are untouched."""
        self._require_phase(Phase.AWAITING_HUMAN_DECISION, "abandon the turn")
        logger.info("Human turn abandoned in round %d", self.round_number)
        self.game_log.entries = [
            e for e in self.game_log.entries
            if not (e.round_number == self.round_number and e.player is Player.HUMAN)
        ]
        self.current_turn = None
        self.phase = Phase.AWAITING_THROW

    def _commit_human_turn(self) -> int:
        turn = self.current_turn
        total = turn.commit()
        self.scores[Player.HUMAN] += total
        self.game_log.log_score(self.round_number, Player.HUMAN, total, turn.dice)
        logger.info("Human banks %d (score %d)", total, self.scores[Player.HUMAN])
        # The computer always answers in the same round, so the round is only
        # evaluated once both players have had a turn.
        self.phase = Phase.COMPUTER_TURN
        return total

    # ── Computer turn ─────────────────────────────────────────────────────

    def run_computer_turn(self) -> Iterator[ComputerTurnStep]:
        """Start the computer's turn and return its steps as a lazy iterator.

        Each step is one decision point: the throw, each reroll taken, a
        declined reroll, and finally the committed score. Closing the
        iterator before the end discards the turn without touching scores.

        Raises:
            InvalidPhase: Not the computer's turn, or its turn is already running
        """
        self._require_phase(Phase.COMPUTER_TURN, "run the computer turn")
        if (self._computer_steps is not None
                and inspect.getgeneratorstate(self._computer_steps) != inspect.GEN_CLOSED):
            raise InvalidPhase("Computer turn already in progress")
        self._computer_steps = self._computer_turn_steps()
        return self._computer_steps

    def abandon_computer_turn(self) -> None:
        """Discard the computer turn in progress, if any. Scores are untouched.

        Use this when the iterator from run_computer_turn() is dropped
        without being closed; a new run_computer_turn() may follow.
        """
        self._require_phase(Phase.COMPUTER_TURN, "abandon the computer turn")
        self._close_computer_steps()

    def _close_computer_steps(self) -> None:
        steps, self._computer_steps = self._computer_steps, None
        if steps is not None:
            steps.close()

    def _computer_turn_steps(self) -> Iterator[ComputerTurnStep]:
        state = self.get_match_state()
        turn = TurnEngine(Player.COMPUTER, self.roller, enforce_keep_limits=False)
        self.current_turn = turn
        round_number = self.round_number
        log_mark = len(self.game_log.entries)
        committed = False
        try:
            yield from play_computer_turn(
                turn, self.strategy,
                score_difference=state.score_difference,
                points_to_target=state.points_to_target,
                game_log=self.game_log,
                round_number=round_number,
            )
            total = turn.commit()
            self.scores[Player.COMPUTER] += total
            committed = True
            entry = self.game_log.log_score(round_number, Player.COMPUTER, total, turn.dice)
            logger.info("Computer banks %d (score %d)", total, self.scores[Player.COMPUTER])
            self._end_round()
            yield ComputerTurnStep(dice=turn.dice, entry=entry, running_total=total,
                                   committed_score=total)
        finally:
            # Only clean up if this turn is still the live one: a new match
            # may have started since.
            if not committed and self.current_turn is turn:
                logger.info("Computer turn discarded in round %d", round_number)
                del self.game_log.entries[log_mark:]
                self.current_turn = None

    def play_computer_turn(self) -> ComputerTurnStep:
        """Run the computer's whole turn at once and return the final step."""
        step = None
        for step in self.run_computer_turn():
            pass
        return step

    def _end_round(self) -> None:
        phase, winner = decide_round_outcome(
            self.scores[Player.HUMAN], self.scores[Player.COMPUTER], self.target_score)
        self.phase = phase
        self.winner = winner
        if phase == Phase.TIE_BREAK:
            logger.info("Both players reached %d, going to tie-break", self.target_score)
        elif phase == Phase.COMPLETE:
            logger.info("%s wins %d-%d", winner.value,
                        self.scores[Player.HUMAN], self.scores[Player.COMPUTER])
        else:
            self.round_number += 1

    # ── Tie-break ─────────────────────────────────────────────────────────

    def resolve_tie_break(self) -> TieBreakRoll:
        """Roll one sudden-death attempt. An equal roll leaves the match in TieBreak."""
        self._require_phase(Phase.TIE_BREAK, "roll a tie-break")
        result = roll_tie_break(self.roller)
        self.last_tie_break = result
        self.game_log.log_tie_break(self.round_number, result.human_dice, result.computer_dice)
        if result.winner is None:
            logger.info("Tie-break tied at %d, roll again", result.human_total)
        else:
            self.winner = result.winner
            self.phase = Phase.COMPLETE
            logger.info("%s wins the tie-break %d-%d", result.winner.value,
                        result.human_total, result.computer_total)
        return result

    def play_tie_break(self, max_attempts: int | None = None) -> TieBreakRoll:
        """Roll tie-breaks until someone wins, or until max_attempts rolls were made.

        Raises:
            ValueError: max_attempts below 1
        """
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        attempts = 0
        result = self.resolve_tie_break()
        attempts += 1
        while result.winner is None and (max_attempts is None or attempts < max_attempts):
            result = self.resolve_tie_break()
            attempts += 1
        return result
