# transcriptions_Server_API/app/core/PDF_Viewer/__init__.py
from .rasterizer import (
    DocumentHandle,
    PyMuPDFRasterizer,
    RasterizationError,
    Rasterizer,
    RenderedPage,
    Viewport,
)
from .viewer import PdfViewer, ViewerConfig, ViewerState
from .viewer_element import HostWindow, ListenerRegistry, ViewerElement

__all__ = [
    "DocumentHandle",
    "HostWindow",
    "ListenerRegistry",
    "PdfViewer",
    "PyMuPDFRasterizer",
    "RasterizationError",
    "Rasterizer",
    "RenderedPage",
    "ViewerConfig",
    "ViewerElement",
    "ViewerState",
    "Viewport",
]
