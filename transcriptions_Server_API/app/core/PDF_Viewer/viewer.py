# viewer.py
# Description: Document pagination engine. Owns page number, in-flight render flag, the single pending-page
#              slot and the loaded document, and mediates between navigation, resize and the rasterizer.
#
# Imports
import asyncio
import html
import math
from enum import Enum
from typing import Any, Dict, List, Optional
#
# 3rd-party Libraries
from loguru import logger
from pydantic import BaseModel, Field
#
# Local Imports
from .rasterizer import DocumentHandle, Rasterizer
from .viewer_element import HostWindow, ViewerElement
#
########################################################################################################################
#
# Functions:


class ViewerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    RENDERING = "rendering"
    ERROR = "error"


class ViewerConfig(BaseModel):
    """Tunables for one viewer instance"""
    render_quality: float = Field(1.5, gt=0)
    resize_debounce_seconds: float = Field(0.3, ge=0)
    load_timeout_seconds: Optional[float] = Field(30.0, gt=0)
    default_container_width: int = Field(800, gt=0)
    missing_url_message: str = "PDF URL not found."
    load_error_message: str = "Unable to load the PDF document."

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "ViewerConfig":
        return cls(
            render_quality=settings.get("PDF_RENDER_QUALITY", 1.5),
            resize_debounce_seconds=settings.get("PDF_RESIZE_DEBOUNCE_SECONDS", 0.3),
            load_timeout_seconds=settings.get("PDF_LOAD_TIMEOUT_SECONDS", 30.0),
            default_container_width=settings.get("PDF_DEFAULT_CONTAINER_WIDTH", 800),
        )


class PdfViewer:
    """
    One viewer per displayed document.

    At most one page render is in flight. A render requested while another is
    running goes into a single pending slot, overwriting whatever was there;
    when the running render finishes, the pending page (if any) renders next.
    Nothing is cancelled mid-flight.

    The host page fires mount() once per viewer mount. Repeated mounts of an
    element already showing the same document are no-ops.
    """

    def __init__(self, rasterizer: Rasterizer, window: Optional[HostWindow] = None,
                 config: Optional[ViewerConfig] = None):
        self.rasterizer = rasterizer
        self.window = window or HostWindow()
        self.config = config or ViewerConfig()

        self.state = ViewerState.UNINITIALIZED
        self.element: Optional[ViewerElement] = None
        self.document: Optional[DocumentHandle] = None
        self.source_url: Optional[str] = None
        self.current_page = 1
        self.is_rendering = False
        self.pending_page: Optional[int] = None
        self.error_message: Optional[str] = None
        self.rendered_pages: List[int] = []

        self._render_task: Optional[asyncio.Task] = None
        self._resize_handle: Optional[asyncio.TimerHandle] = None

    @property
    def page_count(self) -> int:
        return self.document.page_count if self.document is not None else 0

    @property
    def _listener_key(self) -> str:
        return f"pdf-viewer:{id(self.element)}"

    # --- Mount / load ---
    async def mount(self, element: ViewerElement) -> None:
        if element.canvas is None or element.loading is None:
            logger.warning("PDF viewer mounted on an element without canvas or loading indicator; skipping")
            return

        url = element.pdf_url
        if url and element.initialized_for(url):
            logger.debug(f"PDF viewer already initialized for {url}; ignoring repeated mount")
            return

        if not url:
            logger.warning("PDF viewer mounted without a document URL")
            self.element = element
            element.loading.visible = True
            element.loading.message = self.config.missing_url_message
            self.error_message = self.config.missing_url_message
            self.state = ViewerState.ERROR
            return

        if self.source_url is not None and (url != self.source_url or self.element is not element):
            await self._reset()

        element.mark_initialized(url)
        self.element = element
        self.source_url = url
        self.state = ViewerState.LOADING
        self._attach_listeners()
        logger.info(f"Loading PDF document {url}")

        try:
            document = await asyncio.wait_for(self.rasterizer.load_document(url),
                                              timeout=self.config.load_timeout_seconds)
        except asyncio.TimeoutError:
            if self._superseded(url, element):
                logger.debug(f"Ignoring timeout of superseded load for {url}")
                return
            logger.error(f"Loading PDF document {url} timed out after {self.config.load_timeout_seconds}s")
            self._fail(self.config.load_error_message)
            return
        except Exception as e:
            if self._superseded(url, element):
                logger.debug(f"Ignoring failure of superseded load for {url}: {e}")
                return
            logger.error(f"Loading PDF document {url} failed: {e}")
            self._fail(self.config.load_error_message)
            return

        if self._superseded(url, element):
            document.close()
            return

        self.document = document
        element.loading.visible = False
        if element.controls is not None:
            element.controls.page_count_text = str(document.page_count)
            element.controls.visible = document.page_count > 1
        self.state = ViewerState.READY
        self.queue_render_page(1)

    def _superseded(self, url: str, element: ViewerElement) -> bool:
        # A later mount of a different document took over while this load was pending
        return self.source_url != url or self.element is not element

    async def _reset(self) -> None:
        self.pending_page = None
        await self.wait_idle()
        self._cancel_resize()
        if self.element is not None:
            self.element.listeners.detach_all(self._listener_key)
            self.window.listeners.detach_all(self._listener_key)
        if self.document is not None:
            self.document.close()
        self.document = None
        self.source_url = None
        self.current_page = 1
        self.is_rendering = False
        self.error_message = None
        self.rendered_pages = []
        self.state = ViewerState.UNINITIALIZED

    def _fail(self, message: str) -> None:
        self.state = ViewerState.ERROR
        self.error_message = message
        self.pending_page = None
        element = self.element
        if element is None:
            return
        if element.loading is not None:
            element.loading.visible = False
        if element.controls is not None:
            element.controls.visible = False
        url = html.escape(self.source_url or "", quote=True)
        element.replace_canvas_with(
            f'<div class="pdf-error"><p>{html.escape(message)}</p>'
            f'<a href="{url}" target="_blank" rel="noopener" class="pdf-download-link">Download PDF</a></div>')

    # --- Listeners ---
    def _attach_listeners(self) -> None:
        key = self._listener_key
        self.element.listeners.attach("click:prev", self.prev_page, key=key)
        self.element.listeners.attach("click:next", self.next_page, key=key)
        self.window.listeners.attach("resize", self.on_resize, key=key)

    # --- Rendering ---
    def queue_render_page(self, page_number: int) -> None:
        """Render now if idle, otherwise overwrite the pending slot."""
        if self.document is None or self.state == ViewerState.ERROR:
            logger.debug(f"Render of page {page_number} requested with no loaded document; ignoring")
            return
        if not 1 <= page_number <= self.page_count:
            logger.debug(f"Render of page {page_number} requested outside 1..{self.page_count}; ignoring")
            return
        if self.is_rendering:
            self.pending_page = page_number
            return
        self.is_rendering = True
        self.state = ViewerState.RENDERING
        self._render_task = asyncio.get_running_loop().create_task(self._render_loop(page_number))

    async def _render_loop(self, page_number: int) -> None:
        page = page_number
        while True:
            try:
                await self._render_page(page)
            except Exception as e:
                logger.error(f"Rendering page {page} of {self.source_url} failed: {e}")
                self.is_rendering = False
                self._fail(self.config.load_error_message)
                return
            if self.pending_page is None:
                break
            page, self.pending_page = self.pending_page, None
        self.is_rendering = False
        if self.state == ViewerState.RENDERING:
            self.state = ViewerState.READY

    def target_size(self, base_width: float, base_height: float) -> Dict[str, float]:
        """
        Backing-store scale and CSS size for a page whose unscaled viewport is
        base_width x base_height. Recomputed on every render.
        """
        container_width = self.element.container_width or self.config.default_container_width
        output_scale = (self.window.device_pixel_ratio or 1.0) * self.config.render_quality
        css_scale = container_width / base_width
        scale = css_scale * output_scale
        return {
            "scale": scale,
            "output_scale": output_scale,
            "canvas_width": math.floor(base_width * scale),
            "canvas_height": math.floor(base_height * scale),
            "css_width": container_width,
            "css_height": base_height * scale / output_scale,
        }

    async def _render_page(self, page_number: int) -> None:
        document = self.document
        base = await document.page_viewport(page_number, 1.0)
        size = self.target_size(base.width, base.height)
        rendered = await document.render_page(page_number, size["scale"])

        canvas = self.element.canvas
        if canvas is not None:
            canvas.width = size["canvas_width"]
            canvas.height = size["canvas_height"]
            canvas.style_width = f"{size['css_width']}px"
            canvas.style_height = f"{size['css_height']}px"
            canvas.draw(rendered)
        self.rendered_pages.append(page_number)
        if self.element.controls is not None:
            self.element.controls.page_num_text = str(page_number)
        self._update_buttons()

    def _update_buttons(self) -> None:
        controls = self.element.controls if self.element is not None else None
        if controls is None:
            return
        controls.prev_disabled = self.current_page <= 1
        controls.next_disabled = self.current_page >= self.page_count

    # --- Navigation ---
    def prev_page(self) -> None:
        if self.document is None or self.current_page <= 1:
            return
        self.current_page -= 1
        self.queue_render_page(self.current_page)
        self._update_buttons()
        self.element.scroll_into_view()

    def next_page(self) -> None:
        if self.document is None or self.current_page >= self.page_count:
            return
        self.current_page += 1
        self.queue_render_page(self.current_page)
        self._update_buttons()
        self.element.scroll_into_view()

    # --- Resize ---
    def on_resize(self) -> None:
        """Trailing-edge debounce: a burst of resize signals yields one re-render."""
        self._cancel_resize()
        loop = asyncio.get_running_loop()
        self._resize_handle = loop.call_later(self.config.resize_debounce_seconds, self._on_resize_settled)

    def _cancel_resize(self) -> None:
        if self._resize_handle is not None:
            self._resize_handle.cancel()
            self._resize_handle = None

    def _on_resize_settled(self) -> None:
        self._resize_handle = None
        if self.document is not None and self.state != ViewerState.ERROR:
            self.queue_render_page(self.current_page)

    # --- Lifecycle ---
    async def wait_idle(self) -> None:
        while self._render_task is not None and not self._render_task.done():
            await asyncio.shield(self._render_task)

    async def close(self) -> None:
        self._cancel_resize()
        await self.wait_idle()
        if self.element is not None:
            self.element.listeners.detach_all(self._listener_key)
            self.window.listeners.detach_all(self._listener_key)
        if self.document is not None:
            self.document.close()
            self.document = None

#
# End of viewer.py
########################################################################################################################
