from bs4 import BeautifulSoup

from conftest import LEGACY_HTML
from ingest.legacy_html import extract_legacy_index, find_section_li, generate_legacy_index, local_href
from ingest.pdf_keys import normalize_aliases


def test_find_section_li_matches_exact_normalized_title():
    soup = BeautifulSoup(LEGACY_HTML, "lxml")
    assert find_section_li(soup, "Publications") is not None
    assert find_section_li(soup, "Presentations") is not None
    assert find_section_li(soup, "Publication") is None


def test_publications_entries_in_document_order(site):
    index = extract_legacy_index(LEGACY_HTML, "Publications", "papers", site / "public")

    assert index["title"] == "Publications"
    assert [item["id"] for item in index["items"]] == ["papers-1", "papers-2", "papers-3", "papers-4"]

    first = index["items"][0]
    assert first["text"] == "Smith, J., Groundwater flow, J. Hydrol., 2010. PDF"
    assert first["pdfLinks"] == [{
        "fileName": "Groundwater Flow.pdf",
        "localFileName": "Groundwater Flow.pdf",
        "originalHref": "papers/Groundwater%20Flow.pdf",
        "localHref": "/papers/Groundwater%20Flow.pdf",
        "localExists": True,
    }]
    assert first["htmlLines"] == [
        'Smith, J., Groundwater flow, <i>J. Hydrol.</i>, 2010. <a href="/papers/Groundwater%20Flow.pdf">PDF</a>'
    ]
    assert first["missingLocalPdf"] is False


def test_renamed_remote_link_is_relinked(site):
    index = extract_legacy_index(LEGACY_HTML, "Publications", "papers", site / "public")
    link = index["items"][1]["pdfLinks"][0]

    assert link["fileName"] == "Transport–Model.PDF"
    assert link["localFileName"] == "Transport-Model.pdf"
    assert link["localHref"] == "/papers/Transport-Model.pdf"
    assert 'href="/papers/Transport-Model.pdf"' in index["items"][1]["htmlLines"][0]


def test_missing_local_pdf_flags(site):
    items = extract_legacy_index(LEGACY_HTML, "Publications", "papers", site / "public")["items"]

    lost = items[2]
    assert lost["missingLocalPdf"] is True
    assert lost["pdfLinks"][0]["localExists"] is False
    assert lost["pdfLinks"][0]["localFileName"] is None
    assert lost["pdfLinks"][0]["localHref"] is None
    assert 'href="papers/lost.pdf"' in lost["htmlLines"][0]

    no_links = items[3]
    assert no_links["pdfLinks"] == []
    assert no_links["missingLocalPdf"] is False
    assert "nested detail" in no_links["text"]

    for item in items:
        expected = bool(item["pdfLinks"]) and not any(link["localExists"] for link in item["pdfLinks"])
        assert item["missingLocalPdf"] is expected


def test_footer_captured_after_list(site):
    index = extract_legacy_index(LEGACY_HTML, "Publications", "papers", site / "public")
    assert index["footerHtmlLines"] == ["<p>© Copyright notes apply.</p>"]

    talks = extract_legacy_index(LEGACY_HTML, "Presentations", "presentations", site / "public")
    assert talks["footerHtmlLines"] == []


def test_alias_variant_resolves_talk(site):
    aliases = normalize_aliases({"talk.pdf": ["talk_2021.pdf"]})
    index = extract_legacy_index(LEGACY_HTML, "Presentations", "presentations", site / "public", aliases)

    link = index["items"][0]["pdfLinks"][0]
    assert link["localExists"] is True
    assert link["localFileName"] == "talk_2021.pdf"
    assert link["localHref"] == "/presentations/talk_2021.pdf"
    assert 'href="/presentations/talk_2021.pdf"' in index["items"][0]["htmlLines"][0]


def test_without_alias_talk_is_missing(site):
    index = extract_legacy_index(LEGACY_HTML, "Presentations", "presentations", site / "public")
    assert index["items"][0]["missingLocalPdf"] is True


def test_unknown_section_and_missing_file_give_empty_index(site):
    index = extract_legacy_index(LEGACY_HTML, "Reports", "reports", site / "public")
    assert index["items"] == [] and index["footerHtmlLines"] == []

    missing = generate_legacy_index(site / "legacy" / "gone.html", "Publications", "papers", site / "public")
    assert missing["items"] == []
    assert missing["schemaVersion"] == 1


def test_local_href_escaping():
    assert local_href("papers", "A (b) & c's.pdf") == "/papers/A%20(b)%20%26%20c's.pdf"
