"""Shared fixtures for qualivida_core tests."""

import pytest
import structlog

from qualivida_core.models import Resident


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: list[list[str]]) -> bytes:
    """Build a minimal PDF with one Helvetica text line per entry.

    Object layout: 1 catalog, 2 page tree, 3 font, then a page object and
    its content stream for every page.
    """
    objects: dict[int, bytes] = {}
    kids = [4 + 2 * i for i in range(len(pages))]

    objects[1] = b"<< /Type /Catalog /Pages 2 0 R >>"
    objects[2] = (
        "<< /Type /Pages /Kids ["
        + " ".join(f"{k} 0 R" for k in kids)
        + f"] /Count {len(pages)} >>"
    ).encode("latin-1")
    objects[3] = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"

    for page_id, lines in zip(kids, pages):
        content_id = page_id + 1
        ops = " ".join(f"({_escape(line)}) Tj T*" for line in lines)
        stream = f"BT /F1 10 Tf 14 TL 40 800 Td {ops} ET".encode("latin-1")
        objects[page_id] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] "
            "/Resources << /Font << /F1 3 0 R >> >> "
            f"/Contents {content_id} 0 R >>"
        ).encode("latin-1")
        objects[content_id] = (
            f"<< /Length {len(stream)} >>\nstream\n".encode("latin-1")
            + stream
            + b"\nendstream"
        )

    out = b"%PDF-1.4\n"
    offsets: dict[int, int] = {}
    for obj_id in sorted(objects):
        offsets[obj_id] = len(out)
        out += f"{obj_id} 0 obj\n".encode("latin-1") + objects[obj_id] + b"\nendobj\n"

    xref_pos = len(out)
    size = len(objects) + 1
    out += f"xref\n0 {size}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for obj_id in sorted(objects):
        out += f"{offsets[obj_id]:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {size} /Root 1 0 R >>\nstartxref\n{xref_pos}\n%%EOF\n"
    ).encode("latin-1")
    return out


BOLETO_LINES = [
    "CONDOMINIO QUALIVIDA RESIDENCE - Boleto de Pagamento",
    "CPF/CNPJ: 123.456.789-00",
    "Nome: JOAO DA SILVA SANTOS - Unidade: 03/005",
    "Referencia: 12/2024 Vencimento: 10/12/2024",
    "Valor do Documento: R$ 1.250,00",
    "Nosso Numero: 001234567-8",
    "00190000090012345678901234567890123456789012",
]

BOLETO_TEXT = "\n".join(BOLETO_LINES)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def boleto_pdf() -> bytes:
    """A one-page boleto with every field printed."""
    return build_pdf([BOLETO_LINES])


@pytest.fixture
def roster() -> list[Resident]:
    """A small roster of residents."""
    return [
        Resident(id="r1", name="João da Silva Santos", unit="03/005", cpf="12345678900"),
        Resident(id="r2", name="Maria Souza Lima", unit="101A", cpf="98765432100"),
        Resident(id="r3", name="Carlos Pereira", unit="1011", cpf="11122233344"),
        Resident(id="r4", name="Ana Beatriz Gonçalves", unit="2101"),
        Resident(id="r5", name="Pedro Álvares", unit="12/345"),
    ]


@pytest.fixture
def make_pdf():
    """Factory building PDF bytes from a list of pages of text lines."""
    return build_pdf


@pytest.fixture
def boleto_text() -> str:
    """The text of ``boleto_pdf``, as a text-layer decode would return it."""
    return BOLETO_TEXT
