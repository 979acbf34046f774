"""
Dice Duel AI — Computer opponent decisions and turn loop.

Contains:
- Rule functions for the value-based strategy (first reroll, second reroll,
  which dice to keep), each with an explain_* variant that names the rule
- ComputerStrategy abstract base class and ValueBasedStrategy
- play_computer_turn() generator that drives one computer turn

The strategy keeps high dice (5s and 6s), rerolls low dice (1s and 2s) and
treats 3s and 4s according to the match situation. It takes more risk when
behind or close to the target and plays safe when ahead. Everything here is
a pure function of its inputs.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional, Sequence, Tuple
import logging

from game_engine import MAX_REROLLS, TurnEngine

if TYPE_CHECKING:
    from game_log import GameLog, LogEntry


logger = logging.getLogger(__name__)


# ── Decision Types ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RerollDecision:
    """Whether to take the next reroll, and why."""
    reroll: bool
    reason: str = ""


@dataclass(frozen=True)
class ComputerTurnStep:
    """One decision point of the computer's turn, as seen by a renderer."""
    dice: Tuple[int, ...]
    entry: "LogEntry"
    running_total: int
    reason: str = ""
    committed_score: Optional[int] = None

    @property
    def event_type(self) -> str:
        return self.entry.event_type

    @property
    def is_final(self) -> bool:
        return self.committed_score is not None

    @property
    def messages(self) -> list:
        return self.entry.describe()


# ── Rule Functions ──────────────────────────────────────────────────────────

def explain_first_reroll(dice: Sequence[int], score_difference: int,
                         points_to_target: int) -> RerollDecision:
    """Decide whether to take the first reroll.

    Rules are checked in order and the first match decides:
    strong roll, too many low dice, then one situational threshold.

    Args:
        dice: The five dice after the throw
        score_difference: computer score minus human score
        points_to_target: target score minus computer score
    """
    total = sum(dice)
    high = sum(1 for v in dice if v >= 5)
    low = sum(1 for v in dice if v <= 2)

    if high >= 3 and total >= 22:
        return RerollDecision(False, f"{high} high dice and {total} showing — standing")
    if low >= 3:
        return RerollDecision(True, f"{low} low dice — rerolling")
    if points_to_target < 30:
        return RerollDecision(total < 20, f"Close to target, threshold 20 (have {total})")
    if score_difference < -10:
        return RerollDecision(total < 18, f"Behind by {-score_difference}, threshold 18 (have {total})")
    if score_difference > 10:
        return RerollDecision(total < 15, f"Ahead by {score_difference}, threshold 15 (have {total})")
    return RerollDecision(total < 17, f"Even game, threshold 17 (have {total})")


def explain_second_reroll(dice: Sequence[int], first_roll_dice: Sequence[int],
                          score_difference: int, points_to_target: int) -> RerollDecision:
    """Decide whether to take the second reroll.

    Args:
        dice: The five dice now showing
        first_roll_dice: The dice as they stood right after the first reroll
        score_difference: computer score minus human score
        points_to_target: target score minus computer score
    """
    total = sum(dice)
    if total >= 25:
        return RerollDecision(False, f"{total} showing — too good to risk")

    high_kept = sum(1 for v, first in zip(dice, first_roll_dice) if v >= 5 and v == first)
    if high_kept >= 3:
        return RerollDecision(False, f"{high_kept} high dice held from the first reroll")
    if points_to_target < 20:
        return RerollDecision(True, "Close to target — pushing")
    if score_difference < -20:
        return RerollDecision(True, f"Behind by {-score_difference} — pushing")
    if score_difference > 20:
        return RerollDecision(False, f"Ahead by {score_difference} — playing safe")
    return RerollDecision(total < 20, f"Threshold 20 (have {total})")


def decide_first_reroll(dice: Sequence[int], score_difference: int, points_to_target: int) -> bool:
    return explain_first_reroll(dice, score_difference, points_to_target).reroll


def decide_second_reroll(dice: Sequence[int], first_roll_dice: Sequence[int],
                         score_difference: int, points_to_target: int) -> bool:
    return explain_second_reroll(dice, first_roll_dice, score_difference, points_to_target).reroll


def _keep_medium(value: int, score_difference: int, points_to_target: int) -> bool:
    """Keep rule for a 3 or a 4."""
    if score_difference > 15:
        return True
    if points_to_target < 30:
        return value == 4
    if score_difference < -15:
        return False
    return value == 4


def decide_which_dice_to_keep(dice: Sequence[int], score_difference: int,
                              points_to_target: int) -> Tuple[bool, ...]:
    """Choose the keep mask for the first reroll.

    5s and 6s are always kept, 1s and 2s always rerolled, 3s and 4s depend
    on the situation. At least one die is always kept: if nothing
    qualified, the first highest die is.

    Returns:
        Tuple of five bools, True = keep
    """
    keep = []
    for value in dice:
        if value >= 5:
            keep.append(True)
        elif value <= 2:
            keep.append(False)
        else:
            keep.append(_keep_medium(value, score_difference, points_to_target))

    if not any(keep):
        keep[list(dice).index(max(dice))] = True
    return tuple(keep)


# ── Strategy Interface ──────────────────────────────────────────────────────

class ComputerStrategy(ABC):
    """Abstract base class for computer opponents."""

    @abstractmethod
    def first_reroll(self, dice, score_difference: int, points_to_target: int) -> RerollDecision:
        ...

    @abstractmethod
    def second_reroll(self, dice, first_roll_dice, score_difference: int,
                      points_to_target: int) -> RerollDecision:
        ...

    @abstractmethod
    def keep_mask(self, dice, score_difference: int, points_to_target: int) -> Tuple[bool, ...]:
        ...


class ValueBasedStrategy(ComputerStrategy):
    """Keeps high dice, rerolls low ones, and adapts to the score situation."""

    def first_reroll(self, dice, score_difference, points_to_target):
        return explain_first_reroll(dice, score_difference, points_to_target)

    def second_reroll(self, dice, first_roll_dice, score_difference, points_to_target):
        return explain_second_reroll(dice, first_roll_dice, score_difference, points_to_target)

    def keep_mask(self, dice, score_difference, points_to_target):
        return decide_which_dice_to_keep(dice, score_difference, points_to_target)


# ── Turn Loop ───────────────────────────────────────────────────────────────

def play_computer_turn(turn: TurnEngine, strategy: ComputerStrategy,
                       score_difference: int, points_to_target: int,
                       game_log: "GameLog", round_number: int) -> Iterator[ComputerTurnStep]:
    """Drive one computer turn, yielding after every decision point.

    Yields the opening throw, each reroll taken, and a "stand" step if the
    strategy declines a reroll. The turn is left finished but uncommitted;
    the caller owns the commit.

    Args:
        turn: A fresh TurnEngine owned by the computer
        strategy: Decision policy
        score_difference: computer score minus human score (fixed for the turn)
        points_to_target: target minus computer score (fixed for the turn)
        game_log: GameLog receiving one entry per step
        round_number: Round being played, for the log
    """
    player = turn.player
    dice = turn.throw()
    entry = game_log.log_roll(round_number, player, dice)
    yield ComputerTurnStep(dice=dice, entry=entry, running_total=turn.running_total)

    first_roll_dice = None
    while turn.rerolls_used < MAX_REROLLS:
        reroll_number = turn.rerolls_used + 1
        if reroll_number == 1:
            decision = strategy.first_reroll(dice, score_difference, points_to_target)
        else:
            decision = strategy.second_reroll(dice, first_roll_dice, score_difference, points_to_target)
        logger.debug("Computer reroll #%d on %s: %s (%s)", reroll_number, dice,
                     "reroll" if decision.reroll else "stand", decision.reason)

        if not decision.reroll:
            turn.score()
            entry = game_log.log_stand(round_number, player, reroll_number, dice, turn.running_total)
            yield ComputerTurnStep(dice=dice, entry=entry, running_total=turn.running_total,
                                   reason=decision.reason)
            return

        previous = dice
        if reroll_number == 1:
            mask = strategy.keep_mask(dice, score_difference, points_to_target)
            dice = turn.reroll(mask)
            first_roll_dice = dice
        else:
            # NOTE: not a bug. The second reroll does not ask the strategy for
            # a new mask. It reuses the first-reroll keep mask with its
            # meaning flipped: the dice that were KEPT last time are the ones
            # rerolled now ("try to improve what you locked in"), and the dice
            # that were just rerolled stay put. TurnEngine.reroll() applies the
            # stored mask this way when called without one.
            mask = turn.record.first_keep_mask
            dice = turn.reroll()
        entry = game_log.log_reroll(round_number, player, reroll_number, previous, mask,
                                    dice, turn.running_total)
        yield ComputerTurnStep(dice=dice, entry=entry, running_total=turn.running_total,
                               reason=decision.reason)

