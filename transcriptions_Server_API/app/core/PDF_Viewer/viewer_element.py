# viewer_element.py
# Description: The page-side surface a document viewer is mounted on: root element, canvas, controls, host window.
#
# Imports
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from .rasterizer import RenderedPage
#
########################################################################################################################
#
# Functions:

PDF_URL_ATTRIBUTE = "pdf-url"
INITIALIZED_ATTRIBUTE = "initialized"
INITIALIZED_URL_ATTRIBUTE = "initialized-url"


class ListenerRegistry:
    """
    Event handlers keyed by (event, key). Attaching under a key that is already
    present detaches the previous handler first, so re-initialization never
    stacks duplicate listeners.
    """

    def __init__(self):
        self._handlers: Dict[str, Dict[Hashable, Callable[..., Any]]] = {}

    def attach(self, event: str, handler: Callable[..., Any], key: Hashable = None) -> None:
        handlers = self._handlers.setdefault(event, {})
        if key in handlers:
            logger.debug(f"Replacing existing '{event}' listener (key={key!r})")
            self.detach(event, key)
        handlers[key] = handler

    def detach(self, event: str, key: Hashable = None) -> bool:
        handlers = self._handlers.get(event, {})
        if key not in handlers:
            return False
        del handlers[key]
        return True

    def detach_all(self, key: Hashable) -> int:
        removed = 0
        for event in list(self._handlers):
            if self.detach(event, key):
                removed += 1
        return removed

    def count(self, event: str) -> int:
        return len(self._handlers.get(event, {}))

    def dispatch(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, {}).values()):
            handler(*args)


@dataclass
class Canvas:
    width: int = 0
    height: int = 0
    style_width: str = ""
    style_height: str = ""
    page: Optional[RenderedPage] = None

    def draw(self, rendered: RenderedPage) -> None:
        self.page = rendered


@dataclass
class LoadingIndicator:
    visible: bool = True
    message: str = "Loading PDF..."


@dataclass
class NavigationControls:
    visible: bool = True
    prev_disabled: bool = False
    next_disabled: bool = False
    page_num_text: str = "1"
    page_count_text: str = "-"


@dataclass
class ViewerElement:
    """Root element of one viewer. The document URL arrives as a single data attribute."""
    data: Dict[str, str] = field(default_factory=dict)
    container_width: Optional[float] = None
    canvas: Optional[Canvas] = field(default_factory=Canvas)
    loading: Optional[LoadingIndicator] = field(default_factory=LoadingIndicator)
    controls: Optional[NavigationControls] = field(default_factory=NavigationControls)
    error_html: Optional[str] = None
    listeners: ListenerRegistry = field(default_factory=ListenerRegistry)
    scroll_requests: int = 0

    @classmethod
    def for_url(cls, pdf_url: Optional[str], **kwargs) -> "ViewerElement":
        data = {PDF_URL_ATTRIBUTE: pdf_url} if pdf_url is not None else {}
        return cls(data=data, **kwargs)

    @property
    def pdf_url(self) -> Optional[str]:
        return self.data.get(PDF_URL_ATTRIBUTE) or None

    @property
    def initialized(self) -> bool:
        return self.data.get(INITIALIZED_ATTRIBUTE) == "true"

    def initialized_for(self, url: str) -> bool:
        return self.initialized and self.data.get(INITIALIZED_URL_ATTRIBUTE) == url

    def mark_initialized(self, url: str) -> None:
        self.data[INITIALIZED_ATTRIBUTE] = "true"
        self.data[INITIALIZED_URL_ATTRIBUTE] = url

    def replace_canvas_with(self, html_fragment: str) -> None:
        self.canvas = None
        self.error_html = html_fragment

    def scroll_into_view(self) -> None:
        self.scroll_requests += 1

    def click(self, control: str) -> None:
        self.listeners.dispatch(f"click:{control}")


@dataclass
class HostWindow:
    device_pixel_ratio: float = 1.0
    listeners: ListenerRegistry = field(default_factory=ListenerRegistry)

    def resize(self) -> None:
        self.listeners.dispatch("resize")

#
# End of viewer_element.py
########################################################################################################################
