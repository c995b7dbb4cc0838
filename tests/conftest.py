from pathlib import Path

import pytest


def _pdf_string(s: str) -> str:
    return "(" + s.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)") + ")"


def build_pdf(lines=(), title=None, author=None, xmp=None) -> bytes:
    """Smallest single-page PDF pdfminer can read: Helvetica text, optional Info dict
    and optional XMP ``/Metadata`` stream (raw bytes)."""
    content = "BT /F1 12 Tf 14 TL 72 720 Td " + " ".join(f"{_pdf_string(ln)} Tj T*" for ln in lines) + " ET"
    catalog = "<< /Type /Catalog /Pages 2 0 R" + (" /Metadata 6 0 R" if xmp is not None else "") + " >>"
    objects = [
        catalog,
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        "/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        f"<< /Length {len(content)} >>\nstream\n{content}\nendstream",
    ]
    if xmp is not None:
        packet = xmp.decode("latin-1")
        objects.append(f"<< /Type /Metadata /Subtype /XML /Length {len(xmp)} >>\nstream\n{packet}\nendstream")
    info = []
    if title is not None:
        info.append(f"/Title {_pdf_string(title)}")
    if author is not None:
        info.append(f"/Author {_pdf_string(author)}")
    if info:
        objects.append("<< " + " ".join(info) + " >>")

    out = b"%PDF-1.4\n"
    offsets = []
    for i, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += f"{i} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += f"{off:010d} 00000 n \n".encode("latin-1")
    trailer = f"/Size {len(objects) + 1} /Root 1 0 R"
    if info:
        trailer += f" /Info {len(objects)} 0 R"
    out += f"trailer\n<< {trailer} >>\nstartxref\n{xref_at}\n%%EOF\n".encode("latin-1")
    return out


@pytest.fixture
def make_pdf():
    def _make(path: Path, lines=(), title=None, author=None, xmp=None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_pdf(lines, title, author, xmp))
        return path
    return _make


LEGACY_HTML = """<!DOCTYPE html>
<html><body>
<ul class="collapsible">
  <li>
    <div class="collapsible-header">
      Publications</div>
    <div class="collapsible-body"><div class="left-align">
      <ul>
        <li>Smith, J., Groundwater flow, <i>J. Hydrol.</i>, 2010. <a href="papers/Groundwater%20Flow.pdf">PDF</a></li>
        <li>Doe, A., Contaminant transport. <a href="http://old.example.org/papers/Transport%E2%80%93Model.PDF?dl=1">PDF</a></li>
        <li>Roe, R., Lost paper. <a href="papers/lost.pdf">PDF</a></li>
        <li>Poe, P., Book chapter without a PDF.
          <ul><li>nested detail</li></ul>
        </li>
      </ul>
      <p>&copy; Copyright notes
         apply.</p>
    </div></div>
  </li>
  <li>
    <div class="collapsible-header">Presentations</div>
    <div class="collapsible-body">
      <ul>
        <li>Invited talk. <a href="talk.pdf">Talk</a></li>
      </ul>
    </div>
  </li>
</ul>
</body></html>
"""


@pytest.fixture
def site(tmp_path, make_pdf):
    """A small site tree: legacy page, PDF folders, app dir and sources.yaml."""
    (tmp_path / "legacy").mkdir()
    (tmp_path / "legacy" / "index.html").write_text(LEGACY_HTML, encoding="utf-8")

    papers = tmp_path / "public" / "papers"
    make_pdf(papers / "Groundwater Flow.pdf")
    make_pdf(papers / "Transport-Model.pdf")
    make_pdf(papers / "orphan_study_2015.pdf", lines=["Some text"])

    talks = tmp_path / "public" / "presentations"
    make_pdf(talks / "talk_2021.pdf")
    make_pdf(talks / "Keynote-2019.pdf")

    (tmp_path / "app").mkdir()
    (tmp_path / "sources.yaml").write_text(
        "paths:\n"
        "  legacy_html: legacy/index.html\n"
        "  public_dir: public\n"
        "  app_dir: app\n"
        "filename_aliases:\n"
        "  talk.pdf: [talk_2021.pdf]\n",
        encoding="utf-8",
    )
    return tmp_path
