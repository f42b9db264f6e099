"""Textual TUI for streamchat: message list plus prompt input."""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Input, Static

from streamchat.config import ChatConfig
from streamchat.core.session import ConversationSession
from streamchat.markdown.render import render_message
from streamchat.types import ChatEvent, EventType, Message, Role


class MessageView(Static):
    """One chat bubble; re-renders the message's full text on refresh."""

    def __init__(self, message: Message) -> None:
        super().__init__(render_message(message))
        self.message = message
        self.add_class("user" if message.role is Role.USER else "model")

    def refresh_content(self) -> None:
        self.set_class(self.message.is_error, "error")
        self.update(render_message(self.message))


class ChatApp(App[None]):
    TITLE = "streamchat"

    CSS = """
    #messages {
        height: 1fr;
        padding: 0 1;
    }
    MessageView {
        margin: 1 0 0 0;
        padding: 0 1;
    }
    MessageView.user {
        background: $boost;
    }
    MessageView.error {
        border-left: thick $error;
    }
    #prompt {
        dock: bottom;
    }
    """

    BINDINGS = [
        Binding("ctrl+n", "new_chat", "New chat"),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, config: ChatConfig) -> None:
        super().__init__()
        self._config = config
        self._views: dict[str, MessageView] = {}
        self.session: ConversationSession | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(id="messages")
        yield Input(placeholder="Ask with AI...", id="prompt")
        yield Footer()

    def on_mount(self) -> None:
        self.session = ConversationSession(self._config)
        self.session.events.subscribe("*", self._on_chat_event)
        self.sub_title = self._config.model
        self.query_one("#prompt", Input).focus()

    async def on_unmount(self) -> None:
        if self.session is not None:
            await self.session.aclose()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value
        event.input.value = ""
        if self.session is not None:
            await self.session.submit(text)

    async def action_new_chat(self) -> None:
        if self.session is not None:
            await self.session.reset()

    async def _on_chat_event(self, event: ChatEvent) -> None:
        container = self.query_one("#messages", VerticalScroll)
        message = event.data.get("message")

        if event.type == EventType.MESSAGE_ADDED:
            view = MessageView(message)
            self._views[message.id] = view
            await container.mount(view)
            container.scroll_end(animate=False)
        elif event.type == EventType.MESSAGE_UPDATED:
            view = self._views.get(message.id)
            if view is not None:
                view.refresh_content()
        elif event.type == EventType.MESSAGE_REMOVED:
            view = self._views.pop(message.id, None)
            if view is not None:
                await view.remove()
        elif event.type == EventType.SESSION_RESET:
            self._views.clear()
            await container.remove_children()
