# rasterizer.py
# Description: Contract between the document viewer and a page-rasterization backend, plus a PyMuPDF backend.
#
# Imports
import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol
#
# 3rd-party Libraries
import httpx
import pymupdf
from loguru import logger
#
# Local Imports
#
########################################################################################################################
#
# Functions:


class RasterizationError(Exception):
    """The backend could not fetch, decode, or render the document."""
    pass


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float


@dataclass(frozen=True)
class RenderedPage:
    page_number: int
    width: int
    height: int
    image: bytes


class DocumentHandle(Protocol):
    page_count: int

    async def page_viewport(self, page_number: int, scale: float = 1.0) -> Viewport: ...

    async def render_page(self, page_number: int, scale: float) -> RenderedPage: ...

    def close(self) -> None: ...


class Rasterizer(Protocol):
    async def load_document(self, url: str) -> DocumentHandle: ...


class PyMuPDFDocument:
    """DocumentHandle over an open pymupdf.Document. Blocking calls run in a worker thread."""

    def __init__(self, doc: "pymupdf.Document"):
        self._doc = doc
        self.page_count = doc.page_count

    def _page(self, page_number: int):
        if not 1 <= page_number <= self.page_count:
            raise RasterizationError(f"Page {page_number} out of range 1..{self.page_count}")
        return self._doc[page_number - 1]

    async def page_viewport(self, page_number: int, scale: float = 1.0) -> Viewport:
        rect = self._page(page_number).rect
        return Viewport(width=rect.width * scale, height=rect.height * scale)

    async def render_page(self, page_number: int, scale: float) -> RenderedPage:
        page = self._page(page_number)

        def _render() -> RenderedPage:
            pix = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
            return RenderedPage(page_number=page_number, width=pix.width, height=pix.height,
                                image=pix.tobytes("png"))

        try:
            return await asyncio.to_thread(_render)
        except RuntimeError as e:
            raise RasterizationError(f"Rendering page {page_number} failed: {e}") from e

    def close(self) -> None:
        self._doc.close()


class PyMuPDFRasterizer:
    """Fetches a document over HTTP and opens it with PyMuPDF."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, fetch_timeout: float = 30.0):
        self._client = client
        self.fetch_timeout = fetch_timeout

    async def _fetch(self, url: str) -> bytes:
        if self._client is not None:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.content
        async with httpx.AsyncClient(timeout=self.fetch_timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    async def load_document(self, url: str) -> PyMuPDFDocument:
        try:
            data = await self._fetch(url)
        except httpx.HTTPError as e:
            logger.error(f"Fetching document {url} failed: {e}")
            raise RasterizationError(f"Could not fetch document: {e}") from e
        try:
            doc = await asyncio.to_thread(pymupdf.open, stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            # pymupdf.FileDataError subclasses RuntimeError
            logger.error(f"Opening document {url} failed: {e}")
            raise RasterizationError(f"Could not open document: {e}") from e
        logger.info(f"Loaded document {url} ({doc.page_count} pages)")
        return PyMuPDFDocument(doc)

#
# End of rasterizer.py
########################################################################################################################
