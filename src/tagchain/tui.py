"""Textual front end: start screen, game screen, end screen."""

import logging
from typing import Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Header, Footer, Input, Button, Static, OptionList
from textual.widgets.option_list import Option

from tagchain.api_client import TagChainAPI
from tagchain.autocomplete import AutocompleteController, AutocompleteView, ViewState
from tagchain.game import (
    DIFFICULTIES,
    TagChainGame,
    difficulty_label,
    end_message,
    end_title,
    format_count,
    milestone_for,
    share_text,
)
from tagchain.scores import BestScores
from tagchain.settings import Settings
from tagchain.starters import random_starter, suggested_starters

logger = logging.getLogger(__name__)


def chain_text(chain: list[str], counts: list[int]) -> Text:
    """Render a chain as `Starter -(812)-> Next -(1.5k)-> ...`."""
    text = Text()
    for i, tag in enumerate(chain):
        if i == 0:
            style = "bold magenta"
        elif i == len(chain) - 1:
            style = "bold green"
        else:
            style = "bold"
        text.append(tag, style=style)
        if i < len(chain) - 1:
            text.append(f"  -({format_count(counts[i])})->  ", style="dim")
    return text


def suggestion_options(view: AutocompleteView) -> list[Option]:
    options = []
    for suggestion in view.suggestions:
        prompt = Text(suggestion.name)
        prompt.highlight_words([view.query], "bold underline", case_sensitive=False)
        if suggestion.already_used:
            prompt.append("  already used", style="italic dim")
        options.append(Option(prompt, disabled=suggestion.already_used))
    return options


class SuggestionList(OptionList):
    """Dropdown showing the autocomplete controller's current view."""

    def show_view(self, view: AutocompleteView) -> None:
        self.clear_options()
        if view.state is ViewState.CLOSED:
            self.display = False
            return
        if view.state is ViewState.RESULTS:
            self.add_options(suggestion_options(view))
        else:
            style = "red" if view.state in (ViewState.RATE_LIMITED, ViewState.ERROR) else "dim"
            self.add_option(Option(Text(view.message, style=style), disabled=True))
        self.display = True


class StartScreen(Screen):
    """Pick a difficulty and a starter tag."""

    def __init__(self, threshold: int) -> None:
        super().__init__()
        self.threshold = threshold
        self.controller: Optional[AutocompleteController] = None
        self._picked: Optional[str] = None
        self._chips = suggested_starters()

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="start-panel"):
            yield Static("[b]Tag Chain[/b]  chain AO3 freeform tags that all appear together", id="intro")
            with Horizontal(classes="row"):
                for threshold, label in DIFFICULTIES.items():
                    yield Button(f"{label} ({format_count(threshold)}+)", id=f"diff-{threshold}")
            yield Static("", id="personal-best")
            yield Input(placeholder="Starter tag (leave blank for random)", id="starter-input")
            yield SuggestionList(id="starter-suggestions")
            with Horizontal(classes="row"):
                for i, tag in enumerate(self._chips):
                    yield Button(tag, id=f"chip-{i}", classes="chip")
            with Horizontal(classes="row"):
                yield Button("Random", id="random-btn")
                yield Button("Start", id="start-btn", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        settings: Settings = self.app.settings
        suggestions = self.query_one("#starter-suggestions", SuggestionList)
        suggestions.display = False
        self.controller = AutocompleteController(
            fetch=self.app.api.autocomplete_async,
            render=suggestions.show_view,
            debounce=settings.get("debounce_ms") / 1000,
            limit=settings.get("suggestion_limit"),
        )
        self._select_difficulty(self.threshold)
        self.query_one("#starter-input", Input).focus()

    def _select_difficulty(self, threshold: int) -> None:
        self.threshold = threshold
        for t in DIFFICULTIES:
            self.query_one(f"#diff-{t}", Button).variant = "success" if t == threshold else "default"
        best = self.app.scores.get(threshold)
        label = self.query_one("#personal-best", Static)
        label.update(f"Your best at this difficulty: [b]{best}[/b] tags" if best else "")

    def _set_starter(self, tag: str) -> None:
        self._picked = tag
        self.query_one("#starter-input", Input).value = tag
        self.controller.close()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.value == self._picked:
            return
        self._picked = None
        self.controller.on_input(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._start()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        name = self.controller.selectable(event.option_index)
        if name:
            self._set_starter(name)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id.startswith("diff-"):
            self._select_difficulty(int(button_id[len("diff-"):]))
        elif button_id.startswith("chip-"):
            self._set_starter(self._chips[int(button_id[len("chip-"):])])
        elif button_id == "random-btn":
            self._set_starter(random_starter())
        elif button_id == "start-btn":
            self._start()

    def _start(self) -> None:
        self.controller.close()
        starter = self.query_one("#starter-input", Input).value.strip() or random_starter()
        try:
            self.app.start_game(starter, self.threshold)
        except ValueError as e:
            self.notify(str(e), severity="error")


class GameScreen(Screen):
    """The chain, the input, and the running stats."""

    BINDINGS = [("ctrl+g", "give_up", "Give up")]

    def __init__(self, game: TagChainGame) -> None:
        super().__init__()
        self.game = game
        self.controller: Optional[AutocompleteController] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="game-panel"):
            yield Static("", id="chain-display")
            yield Static("", id="stats")
            yield Static("", id="milestone")
            yield Static("", id="error-msg")
            yield Input(placeholder="Next tag...", id="tag-input")
            yield SuggestionList(id="tag-suggestions")
            yield Button("Give up", id="give-up-btn", variant="error")
        yield Footer()

    def on_mount(self) -> None:
        settings: Settings = self.app.settings
        suggestions = self.query_one("#tag-suggestions", SuggestionList)
        suggestions.display = False
        self.controller = AutocompleteController(
            fetch=self.app.api.autocomplete_async,
            render=suggestions.show_view,
            is_used=self.game.is_used,
            debounce=settings.get("debounce_ms") / 1000,
            limit=settings.get("suggestion_limit"),
        )
        self._refresh()
        self.query_one("#tag-input", Input).focus()

    def _refresh(self) -> None:
        game = self.game
        self.query_one("#chain-display", Static).update(chain_text(game.chain, game.link_counts))

        last = game.last_link_count
        best = game.best_score()
        self.query_one("#stats", Static).update(
            f"Length [b]{game.chain_length}[/b]   "
            f"Last link [b]{format_count(last) if last is not None else '-'}[/b]   "
            f"Best [b]{best if best else '-'}[/b]   "
            f"Difficulty [b]{difficulty_label(game.threshold)}[/b]"
        )

    def on_input_changed(self, event: Input.Changed) -> None:
        self.controller.on_input(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._propose(event.value)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        name = self.controller.selectable(event.option_index)
        if name:
            self._propose(name)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "give-up-btn":
            self.action_give_up()

    def _propose(self, tag: str) -> None:
        if not tag.strip() or self.game.validating:
            return
        self.controller.close()
        self.run_worker(self._submit(tag), exclusive=False)

    async def _submit(self, tag: str) -> None:
        tag_input = self.query_one("#tag-input", Input)
        error = self.query_one("#error-msg", Static)
        error.update("")
        tag_input.disabled = True
        tag_input.placeholder = "Checking..."
        try:
            proposal = await self.game.propose_tag(tag)
        finally:
            tag_input.disabled = False
            tag_input.placeholder = "Next tag..."
            tag_input.focus()

        if proposal is None:
            return
        if not proposal.accepted:
            error.update(Text(proposal.message, style="red"))
            return

        tag_input.value = ""
        self.controller.close()
        self._refresh()
        milestone = milestone_for(self.game.chain_length)
        if milestone:
            self.query_one("#milestone", Static).update(Text(milestone, style="bold yellow"))

    def action_give_up(self) -> None:
        self.controller.close()
        new_best = self.game.end()
        self.app.switch_screen(EndScreen(self.game, new_best))


class EndScreen(Screen):
    """Final chain, stats and share text."""

    def __init__(self, game: TagChainGame, new_best: bool) -> None:
        super().__init__()
        self.game = game
        self.new_best = new_best

    def compose(self) -> ComposeResult:
        game = self.game
        length = game.chain_length
        weakest = game.weakest_link
        strongest = game.strongest_link

        yield Header()
        with Vertical(id="end-panel"):
            yield Static(f"[b]{end_title(length)}[/b]", id="end-title")
            yield Static(end_message(length), id="end-subtitle")
            yield Static(
                f"Length [b]{length}[/b]   "
                f"Weakest [b]{format_count(weakest) if weakest is not None else '-'}[/b]   "
                f"Strongest [b]{format_count(strongest) if strongest is not None else '-'}[/b]"
                + ("   [b green]New personal best![/]" if self.new_best else ""),
                id="final-stats",
            )
            yield Static(chain_text(game.chain, game.link_counts), id="final-chain")
            with Horizontal(classes="row"):
                yield Button("Copy share text", id="share-btn")
                yield Button("Play again", id="restart-btn", variant="primary")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "share-btn":
            self.app.copy_to_clipboard(share_text(self.game.chain, self.game.threshold))
            self.notify("Copied!")
        elif event.button.id == "restart-btn":
            self.app.switch_screen(StartScreen(self.game.threshold))


class TagChainApp(App):
    """Tag Chain terminal front end."""

    CSS = """
    #start-panel, #game-panel, #end-panel {
        padding: 1 2;
        height: auto;
    }

    .row {
        height: auto;
        margin: 1 0 0 0;
    }

    .chip {
        min-width: 8;
    }

    #chain-display, #final-chain {
        border: solid $accent;
        padding: 0 1;
        height: auto;
        min-height: 3;
    }

    #error-msg, #milestone, #personal-best {
        height: auto;
        margin: 1 0 0 0;
    }

    SuggestionList {
        max-height: 12;
    }
    """

    BINDINGS = [("ctrl+q", "quit", "Quit")]

    def __init__(
        self,
        settings: Settings,
        api: TagChainAPI,
        scores: BestScores,
        threshold: int,
        starter: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.settings = settings
        self.api = api
        self.scores = scores
        self.threshold = threshold
        self.starter = starter

    def on_mount(self) -> None:
        from tagchain import __version__
        self.title = f"Tag Chain v{__version__}"
        self.sub_title = self.api.base_url

        if self.starter:
            try:
                self.push_screen(GameScreen(self._new_game(self.starter, self.threshold)))
                return
            except ValueError as e:
                logger.warning(f"Ignoring starter {self.starter!r}: {e}")
                self.notify(str(e), severity="error")
        self.push_screen(StartScreen(self.threshold))

    def _new_game(self, starter: str, threshold: int) -> TagChainGame:
        game = TagChainGame(self.api.cooccurrence_async, scores=self.scores)
        game.start(starter, threshold)
        return game

    def start_game(self, starter: str, threshold: int) -> None:
        self.switch_screen(GameScreen(self._new_game(starter, threshold)))


def run_tui(settings: Settings, api_url: str, threshold: int, starter: Optional[str] = None) -> None:
    """Run the game until the player quits."""
    api = TagChainAPI(api_url, timeout=float(settings.get("request_timeout")))
    app = TagChainApp(settings, api, BestScores(), threshold, starter)
    app.run()
