from .tui import ChatTUI

__all__ = ["ChatTUI"]
