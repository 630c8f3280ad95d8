# test_page_renderer.py
#
#
# Imports
#
# Third-Party Imports
import pytest
#
# Local Imports
from transcriptions_Server_API.app.core.Rendering.Listing import ListingGroup
from transcriptions_Server_API.app.core.Rendering.Renderer import PageRenderer
from transcriptions_Server_API.app.core.Sync.models import TranscriptionRecord
#
########################################################################################################################
#
# Functions:


@pytest.fixture(scope="module")
def renderer():
    return PageRenderer()


def make_record(**overrides) -> TranscriptionRecord:
    fields = dict(entity_id=7, external_id="r7", title="Longa Farahfaza", url="https://example.org/transcriptions/x/",
                  status="publish", composer="", maqam="", form="", rhythm="", pdf_url="", about="", text="",
                  translation="", analysis="", last_synced_at=None, slug="x")
    fields.update(overrides)
    return TranscriptionRecord(**fields)


def test_list_marks_active_grouping(renderer):
    html = renderer.render_list([ListingGroup("Longa", [{"title": "One", "url": "/a/", "composer": "C",
                                                          "form": "Longa", "maqam": "Rast"}])], "form")
    assert 'href="/transcriptions?groupby=form" class="active"' in html
    assert '<h2 class="group-title">Longa</h2>' in html
    assert '<span class="composer">C</span>' in html
    assert '<span class="form">' not in html


def test_list_escapes_values(renderer):
    html = renderer.render_list([ListingGroup("<b>x</b>", [{"title": "<i>t</i>", "url": "/a/", "composer": "",
                                                             "form": "", "maqam": ""}])], "maqam")
    assert "<b>x</b>" not in html
    assert "&lt;b&gt;x&lt;/b&gt;" in html
    assert "&lt;i&gt;t&lt;/i&gt;" in html


def test_detail_includes_viewer_only_with_pdf(renderer):
    with_pdf = renderer.render_detail(make_record(pdf_url="https://cdn.example.org/a.pdf"))
    assert 'data-pdf-url="https://cdn.example.org/a.pdf"' in with_pdf
    assert 'class="pdf-canvas"' in with_pdf
    assert ">Download PDF</a>" in with_pdf
    assert "data-pdf-url" not in renderer.render_detail(make_record())


def test_detail_keeps_allowed_rich_markup(renderer):
    html = renderer.render_detail(make_record(analysis="<strong>Bold</strong> claim\n\nNext paragraph"))
    assert "<p><strong>Bold</strong> claim</p>" in html
    assert "<p>Next paragraph</p>" in html


def test_detail_resanitizes_rich_fields(renderer):
    html = renderer.render_detail(make_record(about='<script>alert(1)</script><a href="javascript:x()">l</a>'))
    assert "<script>" not in html
    assert "javascript:" not in html


def test_detail_escapes_plain_fields(renderer):
    html = renderer.render_detail(make_record(title="A & B", composer="<em>C</em>", rhythm="Sama'i Thaqil"))
    assert "<h1 class=\"transcription-title\">A &amp; B</h1>" in html
    assert "&lt;em&gt;C&lt;/em&gt;" in html
    assert "Sama&#39;i Thaqil" in html

#
# End of test_page_renderer.py
########################################################################################################################
