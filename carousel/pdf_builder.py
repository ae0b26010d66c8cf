# carousel/pdf_builder.py
"""
Minimal PDF writer for image-only decks.

One page per slide, each page a single full-bleed JPEG painted through an
image XObject. The file is produced in one pass: every object records the
running byte cursor as its offset when it is written, and the xref table is
emitted from those offsets at the end.

Object numbering: 1 = Catalog, 2 = Pages, then (Page, Contents, Image) for
each page in order.
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Union

HEADER = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n"

Number = Union[int, float]


@dataclass(frozen=True)
class PdfPage:
    jpeg: bytes
    page_width: Number   # MediaBox size, slide-format units
    page_height: Number
    image_width: int     # pixel size of the JPEG
    image_height: int


class PdfObject(NamedTuple):
    number: int
    offset: int
    data: bytes


def _num(value: Number) -> str:
    """PDF numeric literal: integers without a decimal point, reals trimmed."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")


class PdfWriter:
    def __init__(self) -> None:
        self._parts: List[bytes] = []
        self._cursor = 0
        self.objects: List[PdfObject] = []

    def write(self, data: bytes) -> None:
        self._parts.append(data)
        self._cursor += len(data)

    def add_object(self, number: int, body: str) -> None:
        self._emit(number, f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1"))

    def add_stream(self, number: int, dictionary: str, stream: bytes) -> None:
        """`dictionary` is the inside of the stream dict, without /Length."""
        entries = f"{dictionary} /Length {len(stream)}".strip()
        head = f"{number} 0 obj\n<< {entries} >>\nstream\n".encode("latin-1")
        self._emit(number, head + stream + b"\nendstream\nendobj\n")

    def _emit(self, number: int, data: bytes) -> None:
        self.objects.append(PdfObject(number, self._cursor, data))
        self.write(data)

    def finish(self, root: int) -> bytes:
        offsets = {obj.number: obj.offset for obj in self.objects}
        count = max(offsets, default=0)
        xref_start = self._cursor

        rows = [f"xref\n0 {count + 1}\n", "0000000000 65535 f \n"]
        for n in range(1, count + 1):
            rows.append(f"{offsets.get(n, 0):010d} 00000 n \n")
        rows.append(f"trailer\n<< /Size {count + 1} /Root {root} 0 R >>\n")
        rows.append(f"startxref\n{xref_start}\n%%EOF\n")
        self.write("".join(rows).encode("latin-1"))
        return b"".join(self._parts)


def content_stream(page_width: Number, page_height: Number, image_name: str) -> bytes:
    """Scale the unit square to the page and paint the image into it."""
    return f"q\n{_num(page_width)} 0 0 {_num(page_height)} 0 0 cm\n/{image_name} Do\nQ\n".encode("latin-1")


def build_pdf(pages: Sequence[PdfPage]) -> bytes:
    catalog_id, pages_id = 1, 2
    ids = [(3 + i * 3, 4 + i * 3, 5 + i * 3) for i in range(len(pages))]

    writer = PdfWriter()
    writer.write(HEADER)
    writer.add_object(catalog_id, f"<< /Type /Catalog /Pages {pages_id} 0 R >>")
    kids = " ".join(f"{page_id} 0 R" for page_id, _, _ in ids)
    writer.add_object(pages_id, f"<< /Type /Pages /Count {len(pages)} /Kids [{kids}] >>")

    for i, (page, (page_id, contents_id, image_id)) in enumerate(zip(pages, ids)):
        name = f"Im{i + 1}"
        media_box = f"[0 0 {_num(page.page_width)} {_num(page.page_height)}]"
        writer.add_object(
            page_id,
            f"<< /Type /Page /Parent {pages_id} 0 R /MediaBox {media_box} "
            f"/Resources << /XObject << /{name} {image_id} 0 R >> /ProcSet [/PDF /ImageC] >> "
            f"/Contents {contents_id} 0 R >>",
        )
        writer.add_stream(contents_id, "", content_stream(page.page_width, page.page_height, name))
        writer.add_stream(
            image_id,
            f"/Type /XObject /Subtype /Image /Width {page.image_width} /Height {page.image_height} "
            "/ColorSpace /DeviceRGB /BitsPerComponent 8 /Filter /DCTDecode",
            page.jpeg,
        )

    return writer.finish(catalog_id)
