#!/usr/bin/env python3
"""
Dice Duel TUI — Terminal front-end using Textual.

Menu (new game, target score, about), a keyboard-driven game screen with
box-art dice, and the computer's turn played back step by step.
"""
import argparse
import logging

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Center, Horizontal, Vertical
from textual.logging import TextualHandler
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Footer, Header, Input, Static

from frontend_adapter import KEEP_DICE_MESSAGE, SPEED_PRESETS, FrontendAdapter
from game_coordinator import GameCoordinator
from game_engine import MIN_TARGET_SCORE, Phase
from settings import load_settings

logger = logging.getLogger(__name__)

FRAME_RATE = 20


# ── Box-art die faces ─────────────────────────────────────────────────────────

BOX_ART = {
    1: ["┌───────┐", "│       │", "│   ●   │", "│       │", "└───────┘"],
    2: ["┌───────┐", "│ ●     │", "│       │", "│     ● │", "└───────┘"],
    3: ["┌───────┐", "│ ●     │", "│   ●   │", "│     ● │", "└───────┘"],
    4: ["┌───────┐", "│ ●   ● │", "│       │", "│ ●   ● │", "└───────┘"],
    5: ["┌───────┐", "│ ●   ● │", "│   ●   │", "│ ●   ● │", "└───────┘"],
    6: ["┌───────┐", "│ ●   ● │", "│ ●   ● │", "│ ●   ● │", "└───────┘"],
}

BOX_ART_KEPT = {
    v: [
        line.replace("┌", "╔").replace("┐", "╗")
        .replace("└", "╚").replace("┘", "╝")
        .replace("─", "═").replace("│", "║")
        for line in lines
    ]
    for v, lines in BOX_ART.items()
}

BOX_ART_EMPTY = ["┌───────┐", "│       │", "│   ?   │", "│       │", "└───────┘"]


def render_dice_box(values, selection):
    """Render five dice side by side; kept dice get a double border."""
    lines = []
    for row in range(5):
        parts = []
        for i in range(5):
            if not values:
                parts.append(BOX_ART_EMPTY[row])
            elif selection[i]:
                parts.append(BOX_ART_KEPT[values[i]][row])
            else:
                parts.append(BOX_ART[values[i]][row])
        lines.append("  ".join(parts))
    labels = []
    for i in range(5):
        mark = " KEEP" if values and selection[i] else ""
        labels.append(f"  [{i + 1}]{mark}".ljust(11))
    lines.append("".join(labels))
    return "\n".join(lines)


ABOUT_TEXT = """[bold]DICE DUEL[/bold]

Race the computer to the target score.

Each turn you throw five dice. You may then reroll twice:
  1st reroll: select 1-4 dice to KEEP, the rest are rerolled.
  2nd reroll: the dice you kept are rerolled instead.
Every roll's total is added to your turn total. Score early
to bank it, or it is banked after the second reroll.

If both players pass the target in the same round, a
sudden-death roll of all five dice decides the winner.

[dim]Esc to close[/dim]"""


# ── Widgets ──────────────────────────────────────────────────────────────────

class ScoreBar(Static):
    """Target and running scores."""

    def render(self):
        adapter = self.app.adapter
        state = adapter.coordinator.get_match_state()
        return (f"[bold]{adapter.target_line()}[/bold]    {adapter.score_line()}"
                f"    Round {state.round_number}")


class DiceDisplay(Static):
    """Renders the dice of the current (or last) turn."""

    def render(self):
        adapter = self.app.adapter
        coord = adapter.coordinator
        if coord.phase == Phase.TIE_BREAK or coord.last_tie_break is not None:
            result = coord.last_tie_break
            if result is None:
                return render_dice_box((), (False,) * 5)
            none = (False,) * 5
            return ("You\n" + render_dice_box(result.human_dice, none)
                    + "\nComputer\n" + render_dice_box(result.computer_dice, none))
        return render_dice_box(coord.dice, adapter.displayed_selection)


class StatusDisplay(Static):
    """Turn total, prompts and errors."""

    def render(self):
        adapter = self.app.adapter
        lines = [f"[bold]{adapter.status_line()}[/bold]"]
        total = adapter.turn_total_line()
        if total:
            lines.append(total)
        if adapter.show_keep_dice_message:
            lines.append(f"[red]{KEEP_DICE_MESSAGE}[/red]")
        tie = adapter.tie_break_line()
        if tie:
            lines.append(tie)
        lines.append(f"[dim]Computer speed: {adapter.speed_name.capitalize()} (+/-)[/dim]")
        return "\n".join(lines)


class ComputerLog(Static):
    """The computer's strategy log for its latest turn."""

    def render(self):
        adapter = self.app.adapter
        if not adapter.computer_log:
            return "[dim]The computer has not played yet.[/dim]"
        lines = ["[bold]Computer[/bold]"] + list(adapter.computer_log)
        if adapter.computer_reason:
            lines.append(f"[dim]{adapter.computer_reason}[/dim]")
        return "\n".join(lines)


# ── Modal Screens ────────────────────────────────────────────────────────────

class AboutScreen(ModalScreen):
    """Rules overlay."""

    BINDINGS = [Binding("escape", "dismiss", "Close")]

    def compose(self) -> ComposeResult:
        yield Center(Static(ABOUT_TEXT, id="about-panel"))


class TargetScoreScreen(ModalScreen[str | None]):
    """Edit the target score. Dismisses with the entered text, or None."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def compose(self) -> ComposeResult:
        with Vertical(id="target-panel"):
            yield Static(f"[bold]Target Score:[/bold]  (minimum {MIN_TARGET_SCORE})")
            yield Input(value=self.app.adapter.target_text, id="target-input")
            with Horizontal():
                yield Button("OK", id="target-ok", variant="primary")
                yield Button("Cancel", id="target-cancel")

    @on(Input.Submitted, "#target-input")
    @on(Button.Pressed, "#target-ok")
    def submit(self):
        self.dismiss(self.query_one("#target-input", Input).value)

    @on(Button.Pressed, "#target-cancel")
    def action_cancel(self):
        self.dismiss(None)


class GameOverScreen(ModalScreen):
    """Winner announcement."""

    BINDINGS = [
        Binding("escape", "dismiss", "Menu"),
        Binding("enter", "dismiss", "Menu"),
    ]

    def compose(self) -> ComposeResult:
        adapter = self.app.adapter
        color = "green" if adapter.result_title() == "You Win!" else "red"
        text = f"[bold {color}]{adapter.result_title()}[/bold {color}]\n\n"
        text += adapter.final_score_line()
        tie = adapter.tie_break_line()
        if tie:
            text += f"\n{tie}"
        text += "\n\n[dim]Press Esc to return to the menu[/dim]"
        yield Center(Static(text, id="game-over-panel"))


# ── Screens ──────────────────────────────────────────────────────────────────

class MenuScreen(Screen):
    """Main menu."""

    BINDINGS = [Binding("escape", "app.quit", "Quit")]

    def compose(self) -> ComposeResult:
        yield Header()
        with Center():
            with Vertical(id="menu"):
                yield Static("[bold]DICE DUEL[/bold]", id="menu-title")
                yield Static("", id="menu-target")
                yield Button("New Game", id="new-game", variant="primary")
                yield Button("Set Score", id="set-score")
                yield Button("About", id="about")
                yield Button("Quit", id="quit")
        yield Footer()

    def on_mount(self):
        self._refresh_target()

    def on_screen_resume(self):
        self._refresh_target()

    def _refresh_target(self):
        self.query_one("#menu-target", Static).update(
            f"Target: {self.app.adapter.target_score}")

    @on(Button.Pressed, "#new-game")
    def new_game(self):
        self.app.start_game()

    @on(Button.Pressed, "#set-score")
    def set_score(self):
        adapter = self.app.adapter
        adapter.open_target_dialog()

        def on_close(text):
            if text is None:
                adapter.cancel_target_dialog()
            else:
                adapter.confirm_target_dialog(text)
            self._refresh_target()
        self.app.push_screen(TargetScoreScreen(), on_close)

    @on(Button.Pressed, "#about")
    def about(self):
        self.app.push_screen(AboutScreen())

    @on(Button.Pressed, "#quit")
    def quit_app(self):
        self.app.exit()


class GameScreen(Screen):
    """The table: dice, scores and the computer's log."""

    BINDINGS = [
        Binding("space", "throw", "Throw", show=True),
        Binding("1", "keep(0)", "Keep 1"),
        Binding("2", "keep(1)", "Keep 2"),
        Binding("3", "keep(2)", "Keep 3"),
        Binding("4", "keep(3)", "Keep 4"),
        Binding("5", "keep(4)", "Keep 5"),
        Binding("r", "reroll", "Reroll", show=True),
        Binding("s", "score", "Score", show=True),
        Binding("t", "tie_break", "Tie-break roll"),
        Binding("plus", "speed(1)", "+Speed"),
        Binding("equals_sign", "speed(1)", "+Speed", show=False),
        Binding("minus", "speed(-1)", "-Speed"),
        Binding("question_mark", "about", "Rules"),
        Binding("escape", "back", "Menu"),
    ]

    def __init__(self):
        super().__init__()
        self._game_over_shown = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield ScoreBar(id="score-bar")
        with Horizontal(id="game-area"):
            with Vertical(id="dice-panel"):
                yield DiceDisplay(id="dice-display")
                with Horizontal(id="controls"):
                    yield Button("Throw", id="throw-btn", variant="primary")
                    yield Button("Reroll Non-Kept Dice", id="reroll-btn")
                    yield Button("Score", id="score-btn")
                    yield Button("Roll for Tie-Break", id="tie-btn")
                yield StatusDisplay(id="status-display")
            with Vertical(id="log-panel"):
                yield ComputerLog(id="computer-log")
        yield Footer()

    def on_mount(self):
        self.set_interval(1 / FRAME_RATE, self._tick)
        self._refresh_display()

    def _tick(self):
        adapter = self.app.adapter
        adapter.update()
        self._refresh_display()
        if adapter.showing_game_over and not self._game_over_shown:
            self._game_over_shown = True
            self.app.push_screen(GameOverScreen(), self._on_game_over_closed)

    def _on_game_over_closed(self, _result=None):
        self.app.adapter.dismiss_game_over()
        self.app.pop_screen()

    def _refresh_display(self):
        adapter = self.app.adapter
        phase = adapter.phase
        for widget_id in ("#score-bar", "#dice-display", "#status-display", "#computer-log"):
            self.query_one(widget_id).refresh()
        throw_btn = self.query_one("#throw-btn", Button)
        reroll_btn = self.query_one("#reroll-btn", Button)
        score_btn = self.query_one("#score-btn", Button)
        tie_btn = self.query_one("#tie-btn", Button)
        throw_btn.display = phase == Phase.AWAITING_THROW
        reroll_btn.display = adapter.coordinator.human_can_reroll
        reroll_btn.label = adapter.reroll_label()
        score_btn.display = phase == Phase.AWAITING_HUMAN_DECISION
        tie_btn.display = phase == Phase.TIE_BREAK

    # ── Actions ──────────────────────────────────────────────────────────

    def action_throw(self):
        self.app.adapter.do_throw()
        self._refresh_display()

    def action_keep(self, index: int):
        self.app.adapter.toggle_die(index)
        self._refresh_display()

    def action_reroll(self):
        self.app.adapter.do_reroll()
        self._refresh_display()

    def action_score(self):
        self.app.adapter.do_score()
        self._refresh_display()

    def action_tie_break(self):
        self.app.adapter.do_tie_break()
        self._refresh_display()

    def action_speed(self, direction: int):
        self.app.adapter.change_speed(direction)
        self._refresh_display()

    def action_about(self):
        self.app.push_screen(AboutScreen())

    def action_back(self):
        self.app.adapter.abandon_match()
        self.app.pop_screen()

    @on(Button.Pressed, "#throw-btn")
    def on_throw_button(self):
        self.action_throw()

    @on(Button.Pressed, "#reroll-btn")
    def on_reroll_button(self):
        self.action_reroll()

    @on(Button.Pressed, "#score-btn")
    def on_score_button(self):
        self.action_score()

    @on(Button.Pressed, "#tie-btn")
    def on_tie_button(self):
        self.action_tie_break()


# ── Main App ─────────────────────────────────────────────────────────────────

class DiceDuelApp(App):
    """Dice Duel terminal UI application."""

    CSS = """
    #menu {
        width: 40;
        height: auto;
        padding: 1 2;
    }

    #menu Button {
        width: 100%;
        margin-top: 1;
    }

    #score-bar {
        height: auto;
        padding: 0 2;
    }

    #game-area {
        layout: horizontal;
        height: 1fr;
    }

    #dice-panel {
        width: 60;
        padding: 1 2;
    }

    #log-panel {
        width: 1fr;
        padding: 1 2;
    }

    #controls {
        height: auto;
        margin-top: 1;
    }

    #status-display, #dice-display, #computer-log {
        height: auto;
    }

    #about-panel, #target-panel, #game-over-panel {
        padding: 2 4;
        border: thick $accent;
        background: $surface;
        width: 64;
        height: auto;
    }
    """

    def __init__(self, adapter: FrontendAdapter):
        super().__init__()
        self.adapter = adapter

    def on_mount(self):
        self.title = "Dice Duel"
        self.theme = "textual-dark" if self.adapter.dark_mode else "textual-light"
        self.push_screen(MenuScreen())

    def start_game(self):
        self.adapter.new_game()
        self.push_screen(GameScreen())


def parse_args(argv=None):
    """Parse command-line arguments.

    Args:
        argv: Optional list of args (for testing). None uses sys.argv.
    """
    parser = argparse.ArgumentParser(description="Dice Duel — race the computer to the target score")
    parser.add_argument("--target", type=int, default=None,
                        help=f"Target score (minimum {MIN_TARGET_SCORE}, default from settings)")
    parser.add_argument("--speed", choices=list(SPEED_PRESETS), default=None,
                        help="Computer playback speed (default from settings)")
    parser.add_argument("--settings", default=None, metavar="PATH",
                        help="Settings file (default ~/.dicegame_settings.json)")
    return parser.parse_args(argv)


def main(argv=None):
    """Entry point for the TUI."""
    args = parse_args(argv)
    settings = load_settings(args.settings)
    if args.target is not None:
        settings["target_score"] = max(MIN_TARGET_SCORE, args.target)
    if args.speed is not None:
        settings["speed"] = args.speed

    logging.basicConfig(level=settings["log_level"], handlers=[TextualHandler()])

    coordinator = GameCoordinator(target_score=settings["target_score"])
    adapter = FrontendAdapter(coordinator, settings=settings)
    logger.info("Starting Dice Duel, target %d", adapter.target_score)
    DiceDuelApp(adapter).run()


if __name__ == "__main__":
    main()
