# test_pymupdf_rasterizer.py
# PyMuPDF backend against an in-memory document served through httpx.MockTransport.
#
# Imports
#
# Third-Party Imports
import httpx
import pymupdf
import pytest
#
# Local Imports
from transcriptions_Server_API.app.core.PDF_Viewer.rasterizer import PyMuPDFRasterizer, RasterizationError
from transcriptions_Server_API.app.core.PDF_Viewer.viewer import PdfViewer, ViewerState
from transcriptions_Server_API.app.core.PDF_Viewer.viewer_element import HostWindow, ViewerElement
#
########################################################################################################################
#
# Functions:

SCORE_URL = "https://cdn.example.org/score.pdf"


def build_pdf(pages=2, width=200, height=300) -> bytes:
    doc = pymupdf.open()
    for number in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((40, 60), f"Page {number + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def client_serving(routes) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        content = routes.get(str(request.url))
        if content is None:
            return httpx.Response(404)
        return httpx.Response(200, content=content, headers={"Content-Type": "application/pdf"})
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_load_and_render():
    async with client_serving({SCORE_URL: build_pdf()}) as client:
        document = await PyMuPDFRasterizer(client=client).load_document(SCORE_URL)
    try:
        assert document.page_count == 2
        viewport = await document.page_viewport(1)
        assert (viewport.width, viewport.height) == (200, 300)
        rendered = await document.render_page(2, 0.5)
        assert rendered.page_number == 2
        assert (rendered.width, rendered.height) == (100, 150)
        assert rendered.image.startswith(b"\x89PNG")
    finally:
        document.close()


@pytest.mark.asyncio
async def test_page_out_of_range():
    async with client_serving({SCORE_URL: build_pdf(pages=1)}) as client:
        document = await PyMuPDFRasterizer(client=client).load_document(SCORE_URL)
    with pytest.raises(RasterizationError):
        await document.render_page(2, 1.0)
    document.close()


@pytest.mark.asyncio
async def test_http_error_is_rasterization_error():
    async with client_serving({}) as client:
        with pytest.raises(RasterizationError):
            await PyMuPDFRasterizer(client=client).load_document(SCORE_URL)


@pytest.mark.asyncio
async def test_garbage_bytes_is_rasterization_error():
    async with client_serving({SCORE_URL: b"definitely not a pdf"}) as client:
        with pytest.raises(RasterizationError):
            await PyMuPDFRasterizer(client=client).load_document(SCORE_URL)


@pytest.mark.asyncio
async def test_viewer_over_pymupdf_backend():
    async with client_serving({SCORE_URL: build_pdf(pages=3)}) as client:
        viewer = PdfViewer(PyMuPDFRasterizer(client=client), HostWindow(device_pixel_ratio=2.0))
        element = ViewerElement.for_url(SCORE_URL, container_width=400)
        await viewer.mount(element)
        await viewer.wait_idle()
        assert viewer.state == ViewerState.READY
        assert element.controls.page_count_text == "3"
        # 400px wide at dpr 2 and quality 1.5 is a 3x page scale over the 200pt page
        assert (element.canvas.width, element.canvas.height) == (1200, 1800)
        assert element.canvas.style_width == "400px"
        assert element.canvas.style_height == "600.0px"
        await viewer.close()

#
# End of test_pymupdf_rasterizer.py
########################################################################################################################
