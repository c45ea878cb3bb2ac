"""ViewModels package for the PaperChat UI."""

from ui.viewmodels.chat import ConversationController

__all__ = [
    "ConversationController",
]
