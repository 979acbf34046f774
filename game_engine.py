"""
Dice Duel Game Engine - Pure game logic without GUI dependencies

This module contains the core rules for Dice Duel: the dice roller, the
per-turn state machine (throw, up to two rerolls, score), the match-level
data model, and the tie-break roll. Nothing here knows about rendering,
timers, or the terminal front-end.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple
import random


NUM_DICE = 5
DIE_FACES = 6
MAX_REROLLS = 2
MIN_TARGET_SCORE = 10
DEFAULT_TARGET_SCORE = 101

# Human first reroll must keep at least one die and reroll at least one die
MIN_KEPT_DICE = 1
MAX_KEPT_DICE = NUM_DICE - 1


# ── Errors ──────────────────────────────────────────────────────────────────

class GameError(Exception):
    """Base class for recoverable rule violations."""


class InvalidPhase(GameError):
    """Operation invoked outside the state in which it is legal."""


class InvalidSelection(GameError):
    """Keep mask rejected (wrong shape, or wrong number of kept dice)."""


# ── Enums ───────────────────────────────────────────────────────────────────

class Player(Enum):
    """The two seats at the table"""
    HUMAN = "human"
    COMPUTER = "computer"

    @property
    def short_name(self) -> str:
        return "H" if self is Player.HUMAN else "C"


class Phase(Enum):
    """Match phases - exactly one is active at any time"""
    AWAITING_THROW = "AwaitingThrow"
    AWAITING_HUMAN_DECISION = "AwaitingHumanDecision"
    COMPUTER_TURN = "ComputerTurn"
    TIE_BREAK = "TieBreak"
    COMPLETE = "Complete"


class TurnStage(Enum):
    """Stages of a single player-turn"""
    START = "start"
    THROWN = "thrown"
    REROLLED_ONCE = "rerolled_once"
    FINISHED = "finished"     # second reroll done, or scored early
    COMMITTED = "committed"   # terminal


# ── Dice ────────────────────────────────────────────────────────────────────

class DiceRoller:
    """Produces die values in [1, 6] from an injected random source.

    Args:
        rng: Any object with a ``randint(a, b)`` method. Defaults to a
             private ``random.Random`` so the core never touches the
             module-level generator.
        seed: Seed for the default generator (ignored when rng is given).
    """

    def __init__(self, rng=None, seed=None):
        self.rng = rng if rng is not None else random.Random(seed)

    def roll_die(self) -> int:
        return self.rng.randint(1, DIE_FACES)

    def roll(self, count: int = NUM_DICE) -> list:
        return [self.roll_die() for _ in range(count)]


class DiceSet:
    """The five dice of one turn. Mutated in place, never resized."""

    def __init__(self, values: Sequence[int]):
        values = list(values)
        if len(values) != NUM_DICE:
            raise ValueError(f"A dice set holds {NUM_DICE} dice, got {len(values)}")
        for v in values:
            if not 1 <= v <= DIE_FACES:
                raise ValueError(f"Invalid die value {v}, must be between 1 and {DIE_FACES}")
        self._values = values

    @classmethod
    def roll_new(cls, roller: DiceRoller) -> "DiceSet":
        return cls(roller.roll(NUM_DICE))

    @property
    def values(self) -> Tuple[int, ...]:
        """Snapshot of the current face values."""
        return tuple(self._values)

    @property
    def total(self) -> int:
        return sum(self._values)

    def reroll_positions(self, positions, roller: DiceRoller) -> None:
        """Re-roll the dice at the given indices, leaving the rest untouched."""
        for i in positions:
            self._values[i] = roller.roll_die()

    def __len__(self):
        return NUM_DICE

    def __getitem__(self, index):
        return self._values[index]

    def __iter__(self):
        return iter(tuple(self._values))

    def __repr__(self):
        return f"DiceSet({self._values!r})"


def validate_keep_mask(keep_mask) -> Tuple[bool, ...]:
    """
    Normalize a keep mask to a tuple of five bools.

    Args:
        keep_mask: Sequence of booleans aligned with the dice

    Returns:
        Tuple of five bools

    Raises:
        InvalidSelection: If the mask is not a sequence of exactly five bools
    """
    if keep_mask is None:
        raise InvalidSelection("A keep mask is required")
    try:
        mask = tuple(keep_mask)
    except TypeError:
        raise InvalidSelection(f"Keep mask must be a sequence, got {type(keep_mask).__name__}")
    if len(mask) != NUM_DICE:
        raise InvalidSelection(f"Keep mask must have {NUM_DICE} entries, got {len(mask)}")
    for i, flag in enumerate(mask):
        if not isinstance(flag, bool):
            raise InvalidSelection(
                f"Keep mask entry {i} must be a bool, got {type(flag).__name__}")
    return mask


def kept_values(dice: Sequence[int], mask: Sequence[bool]) -> list:
    """Values of the dice whose mask entry is True."""
    return [v for v, keep in zip(dice, mask) if keep]


# ── Turn ────────────────────────────────────────────────────────────────────

@dataclass
class TurnRecord:
    """Running totals for one player's turn"""
    player: Player
    initial_roll_total: int = 0
    first_reroll_total: int = 0
    second_reroll_total: int = 0
    rerolls_used: int = 0  # 0-2
    running_total: int = 0
    first_keep_mask: Optional[Tuple[bool, ...]] = None


class TurnEngine:
    """State machine for a single player-turn.

    Start -> Thrown -> RerolledOnce -> Finished -> Committed. The engine
    never touches match scores: commit() hands the turn total back to the
    owner, who adds it to the right player.

    Every method validates before it mutates, so a rejected call leaves the
    turn exactly as it was.
    """

    def __init__(self, player: Player, roller: DiceRoller, enforce_keep_limits: bool = True):
        self.player = player
        self.roller = roller
        self.enforce_keep_limits = enforce_keep_limits
        self.stage = TurnStage.START
        self.record = TurnRecord(player=player)
        self._dice = None

    @property
    def dice(self) -> Tuple[int, ...]:
        """Current dice values (empty before the throw)."""
        return self._dice.values if self._dice is not None else ()

    @property
    def rerolls_used(self) -> int:
        return self.record.rerolls_used

    @property
    def running_total(self) -> int:
        return self.record.running_total

    @property
    def can_reroll(self) -> bool:
        return self.stage in (TurnStage.THROWN, TurnStage.REROLLED_ONCE)

    @property
    def can_score(self) -> bool:
        return self.can_reroll

    @property
    def is_finished(self) -> bool:
        return self.stage == TurnStage.FINISHED

    def throw(self) -> Tuple[int, ...]:
        """Roll all five dice to open the turn."""
        if self.stage != TurnStage.START:
            raise InvalidPhase(f"Cannot throw: turn is {self.stage.value}")
        self._dice = DiceSet.roll_new(self.roller)
        total = self._dice.total
        self.record.initial_roll_total = total
        self.record.running_total = total
        self.record.rerolls_used = 0
        self.stage = TurnStage.THROWN
        return self.dice

    def reroll(self, keep_mask=None) -> Tuple[int, ...]:
        """
        Perform the next reroll and add the new dice total to the running total.

        First reroll: ``keep_mask`` is required and True marks dice to RETAIN;
        every other die is rerolled. The mask is stored.

        Second reroll: True marks dice that ARE rerolled. Without an explicit
        mask the stored first-reroll mask is used, so exactly the dice that
        were kept last time get rerolled and the ones that were already
        rerolled stay as they are.

        Args:
            keep_mask: Sequence of five bools (optional on the second reroll)

        Returns:
            The dice after the reroll

        Raises:
            InvalidPhase: Not thrown yet, or both rerolls already used
            InvalidSelection: Malformed mask, or kept count outside [1, 4]
                when the human limits are enforced
        """
        if self.stage == TurnStage.THROWN:
            mask = validate_keep_mask(keep_mask)
            kept = sum(mask)
            if self.enforce_keep_limits and not MIN_KEPT_DICE <= kept <= MAX_KEPT_DICE:
                raise InvalidSelection(
                    f"Keep between {MIN_KEPT_DICE} and {MAX_KEPT_DICE} dice, got {kept}")
            self._dice.reroll_positions(
                [i for i, keep in enumerate(mask) if not keep], self.roller)
            total = self._dice.total
            self.record.first_keep_mask = mask
            self.record.first_reroll_total = total
            self.record.running_total += total
            self.record.rerolls_used = 1
            self.stage = TurnStage.REROLLED_ONCE
            return self.dice

        if self.stage == TurnStage.REROLLED_ONCE:
            if keep_mask is None:
                mask = self.record.first_keep_mask
            else:
                mask = validate_keep_mask(keep_mask)
            # Inverted on purpose: on the second reroll the True entries are
            # the dice to REROLL. With the stored mask this re-rolls what was
            # kept first time round and leaves the fresh dice alone.
            self._dice.reroll_positions(
                [i for i, reroll in enumerate(mask) if reroll], self.roller)
            total = self._dice.total
            self.record.second_reroll_total = total
            self.record.running_total += total
            self.record.rerolls_used = 2
            self.stage = TurnStage.FINISHED
            return self.dice

        raise InvalidPhase(f"Cannot reroll: turn is {self.stage.value}")

    def score(self) -> int:
        """End the turn early, keeping the running total as it stands."""
        if not self.can_score:
            raise InvalidPhase(f"Cannot score: turn is {self.stage.value}")
        self.stage = TurnStage.FINISHED
        return self.record.running_total

    def commit(self) -> int:
        """Close the turn and return the total to add to the player's score.

        Only a finished turn can be committed, and only once.
        """
        if self.stage != TurnStage.FINISHED:
            raise InvalidPhase(f"Cannot commit: turn is {self.stage.value}")
        self.stage = TurnStage.COMMITTED
        return self.record.running_total


# ── Match snapshot and tie-break ────────────────────────────────────────────

@dataclass(frozen=True)
class TieBreakRoll:
    """One sudden-death attempt: both players roll all five dice."""
    human_dice: Tuple[int, ...]
    computer_dice: Tuple[int, ...]

    @property
    def human_total(self) -> int:
        return sum(self.human_dice)

    @property
    def computer_total(self) -> int:
        return sum(self.computer_dice)

    @property
    def winner(self) -> Optional[Player]:
        """Higher sum wins; None on an exact tie."""
        if self.human_total > self.computer_total:
            return Player.HUMAN
        if self.computer_total > self.human_total:
            return Player.COMPUTER
        return None


def roll_tie_break(roller: DiceRoller) -> TieBreakRoll:
    """Roll a fresh five-dice set for each player (human first)."""
    human = tuple(roller.roll(NUM_DICE))
    computer = tuple(roller.roll(NUM_DICE))
    return TieBreakRoll(human_dice=human, computer_dice=computer)


@dataclass(frozen=True)
class MatchState:
    """Read-only snapshot of a match"""
    human_score: int
    computer_score: int
    target_score: int
    phase: Phase
    winner: Optional[Player] = None
    round_number: int = 1
    last_tie_break: Optional[TieBreakRoll] = None

    @property
    def score_difference(self) -> int:
        """Computer score minus human score."""
        return self.computer_score - self.human_score

    @property
    def points_to_target(self) -> int:
        """How far the computer still is from the target."""
        return self.target_score - self.computer_score

    @property
    def is_complete(self) -> bool:
        return self.phase == Phase.COMPLETE

    def score_of(self, player: Player) -> int:
        return self.human_score if player is Player.HUMAN else self.computer_score


def validate_target_score(target_score) -> int:
    """
    Validate a match target score.

    Raises:
        ValueError: If the target is not an integer of at least 10
    """
    if isinstance(target_score, bool) or not isinstance(target_score, int):
        raise ValueError(f"Target score must be an integer, got {type(target_score).__name__}")
    if target_score < MIN_TARGET_SCORE:
        raise ValueError(f"Target score must be at least {MIN_TARGET_SCORE}, got {target_score}")
    return target_score


def decide_round_outcome(human_score: int, computer_score: int, target_score: int):
    """
    Evaluate the end-of-round conditions.

    Returns:
        (phase, winner) tuple: TIE_BREAK when both reached the target,
        COMPLETE with the winner when exactly one did, AWAITING_THROW otherwise
    """
    human_done = human_score >= target_score
    computer_done = computer_score >= target_score
    if human_done and computer_done:
        return Phase.TIE_BREAK, None
    if human_done:
        return Phase.COMPLETE, Player.HUMAN
    if computer_done:
        return Phase.COMPLETE, Player.COMPUTER
    return Phase.AWAITING_THROW, None
