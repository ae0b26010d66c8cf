"""
tests/test_pdf_builder.py — Image-only PDF writer

Checks the structural guarantees a PDF reader relies on: header, one page
per input, correct image dimensions, and an xref table whose offsets land
exactly on each "<n> 0 obj" marker.
"""

import io
import re

import pytest
from PIL import Image

from carousel.pdf_builder import HEADER, PdfPage, build_pdf, content_stream


def _jpeg(size, color=(200, 10, 10)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG", quality=80)
    return buf.getvalue()


def _page(width=1080, height=1350, scale=0.1):
    w, h = round(width * scale), round(height * scale)
    return PdfPage(jpeg=_jpeg((w, h)), page_width=width, page_height=height, image_width=w, image_height=h)


def _xref_offsets(pdf):
    start = int(re.search(rb"startxref\n(\d+)\n%%EOF\n$", pdf).group(1))
    assert pdf[start:start + 4] == b"xref"
    header = re.match(rb"xref\n0 (\d+)\n", pdf[start:])
    count = int(header.group(1))
    rows = pdf[start + header.end():].split(b"\n")[:count]
    return count, rows


@pytest.fixture
def three_page_pdf():
    return build_pdf([_page(), _page(1080, 1080), _page()])


class TestBuildPdf:
    def test_header(self, three_page_pdf):
        assert three_page_pdf.startswith(HEADER)
        assert three_page_pdf.startswith(b"%PDF-1.4\n")

    def test_one_page_object_per_slide(self, three_page_pdf):
        assert three_page_pdf.count(b"/Type /Page /Parent") == 3
        assert b"/Type /Pages /Count 3 /Kids [3 0 R 6 0 R 9 0 R]" in three_page_pdf

    def test_media_box_uses_format_units(self, three_page_pdf):
        boxes = re.findall(rb"/MediaBox \[0 0 (\d+) (\d+)\]", three_page_pdf)
        assert boxes == [(b"1080", b"1350"), (b"1080", b"1080"), (b"1080", b"1350")]

    def test_image_dimensions_match_jpeg(self, three_page_pdf):
        dims = re.findall(rb"/Width (\d+) /Height (\d+)", three_page_pdf)
        assert dims == [(b"108", b"135"), (b"108", b"108"), (b"108", b"135")]
        assert three_page_pdf.count(b"/Filter /DCTDecode") == 3

    def test_xref_covers_every_object(self, three_page_pdf):
        count, rows = _xref_offsets(three_page_pdf)
        assert count == 2 + 3 * 3 + 1
        assert rows[0] == b"0000000000 65535 f "
        assert b"/Size 12 /Root 1 0 R" in three_page_pdf

    def test_xref_offsets_point_at_objects(self, three_page_pdf):
        count, rows = _xref_offsets(three_page_pdf)
        for number, row in enumerate(rows[1:], start=1):
            assert len(row) == 19 and row.endswith(b" 00000 n ")
            offset = int(row[:10])
            marker = f"{number} 0 obj".encode()
            assert three_page_pdf[offset:offset + len(marker)] == marker

    def test_stream_lengths_are_exact(self, three_page_pdf):
        for match in re.finditer(rb"/Length (\d+) >>\nstream\n", three_page_pdf):
            length = int(match.group(1))
            end = match.end() + length
            assert three_page_pdf[end:end + len(b"\nendstream")] == b"\nendstream"

    def test_jpeg_embedded_verbatim(self):
        page = _page()
        assert page.jpeg in build_pdf([page])

    def test_empty_document_is_still_well_formed(self):
        pdf = build_pdf([])
        count, rows = _xref_offsets(pdf)
        assert count == 3
        assert b"/Count 0 /Kids []" in pdf


def test_content_stream_scales_unit_square():
    assert content_stream(1080, 1350, "Im1") == b"q\n1080 0 0 1350 0 0 cm\n/Im1 Do\nQ\n"
    assert content_stream(612.5, 792, "Im2").startswith(b"q\n612.5 0 0 792 0 0 cm")
