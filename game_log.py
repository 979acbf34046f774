"""Game log for Dice Duel — records every roll and decision in a match.

Pure Python, no UI dependency. Captures throws, rerolls, declined rerolls,
committed scores and tie-break rolls, and renders the computer's
strategy log shown next to the dice.
"""
from __future__ import annotations

from dataclasses import dataclass

from game_engine import Player, kept_values


def _join(values) -> str:
    return ", ".join(str(v) for v in values)


@dataclass
class LogEntry:
    """A single logged game event."""
    round_number: int
    player: Player
    event_type: str                             # "roll", "reroll", "stand", "score", "tie_break"
    dice_values: tuple[int, ...]
    roll_total: int = 0
    running_total: int = 0
    reroll_number: int = 0                      # 1-2 for rerolls and declined rerolls
    keep_mask: tuple[bool, ...] | None = None
    previous_dice: tuple[int, ...] | None = None
    score: int | None = None
    opponent_dice: tuple[int, ...] | None = None  # tie-break only (computer's set)

    def describe(self) -> list[str]:
        """Render this entry as strategy-log lines."""
        if self.event_type == "roll":
            return [f"First roll: {_join(self.dice_values)} = {self.roll_total}"]
        if self.event_type == "reroll":
            if self.reroll_number == 1:
                head = f"Reroll #1: Keeping {kept_values(self.previous_dice, self.keep_mask)}"
            else:
                head = f"Reroll #{self.reroll_number}: Rerolling {kept_values(self.previous_dice, self.keep_mask)}"
            return [head, f"New roll: {_join(self.dice_values)} = {self.roll_total}"]
        if self.event_type == "stand":
            return [f"Decided not to reroll #{self.reroll_number}"]
        if self.event_type == "score":
            return [f"Final total: {self.score}"]
        if self.event_type == "tie_break":
            return [f"Tie roll - H: {sum(self.dice_values)} / C: {sum(self.opponent_dice)}"]
        return []


class GameLog:
    """Accumulates LogEntry records during a match."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    def _append(self, entry: LogEntry) -> LogEntry:
        self.entries.append(entry)
        return entry

    def log_roll(self, round_number: int, player: Player, dice_values) -> LogEntry:
        """Record the opening throw of a turn."""
        dice_values = tuple(dice_values)
        total = sum(dice_values)
        return self._append(LogEntry(
            round_number=round_number,
            player=player,
            event_type="roll",
            dice_values=dice_values,
            roll_total=total,
            running_total=total,
        ))

    def log_reroll(self, round_number: int, player: Player, reroll_number: int,
                   previous_dice, keep_mask, dice_values, running_total: int) -> LogEntry:
        """Record a reroll and the mask that drove it."""
        dice_values = tuple(dice_values)
        return self._append(LogEntry(
            round_number=round_number,
            player=player,
            event_type="reroll",
            dice_values=dice_values,
            roll_total=sum(dice_values),
            running_total=running_total,
            reroll_number=reroll_number,
            keep_mask=tuple(keep_mask),
            previous_dice=tuple(previous_dice),
        ))

    def log_stand(self, round_number: int, player: Player, reroll_number: int,
                  dice_values, running_total: int) -> LogEntry:
        """Record a declined reroll."""
        dice_values = tuple(dice_values)
        return self._append(LogEntry(
            round_number=round_number,
            player=player,
            event_type="stand",
            dice_values=dice_values,
            roll_total=sum(dice_values),
            running_total=running_total,
            reroll_number=reroll_number,
        ))

    def log_score(self, round_number: int, player: Player, score: int, dice_values) -> LogEntry:
        """Record a committed turn total."""
        dice_values = tuple(dice_values)
        return self._append(LogEntry(
            round_number=round_number,
            player=player,
            event_type="score",
            dice_values=dice_values,
            roll_total=sum(dice_values),
            running_total=score,
            score=score,
        ))

    def log_tie_break(self, round_number: int, human_dice, computer_dice) -> LogEntry:
        """Record one sudden-death attempt (stored from the human's side)."""
        return self._append(LogEntry(
            round_number=round_number,
            player=Player.HUMAN,
            event_type="tie_break",
            dice_values=tuple(human_dice),
            roll_total=sum(human_dice),
            opponent_dice=tuple(computer_dice),
        ))

    def get_round_entries(self, round_number: int, player: Player | None = None) -> list[LogEntry]:
        """Return all entries for a round, optionally for one player only."""
        return [e for e in self.entries
                if e.round_number == round_number
                and (player is None or e.player == player)]

    def get_score_entries(self, player: Player | None = None) -> list[LogEntry]:
        """Return only committed-score entries."""
        return [e for e in self.entries
                if e.event_type == "score" and (player is None or e.player == player)]

    def computer_strategy_log(self, round_number: int) -> list[str]:
        """Strategy-log lines for the computer's turn in a round."""
        lines = []
        for entry in self.get_round_entries(round_number, Player.COMPUTER):
            lines.extend(entry.describe())
        return lines

    def clear(self) -> None:
        """Remove all entries."""
        self.entries = []
