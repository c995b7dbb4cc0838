import re

import pytest

from ingest.sanitize import (
    guess_authors_from_text,
    is_shouting,
    sanitize_authors,
    sanitize_title,
    title_from_filename,
    year_from_filename,
)


def test_title_strips_powerpoint_artifacts():
    assert sanitize_title("Microsoft PowerPoint - Groundwater Flow.pptx") == "Groundwater Flow"
    assert sanitize_title("Aquifer   tests.pdf") == "Aquifer tests"


@pytest.mark.parametrize("raw", [None, "", "   ", "Untitled", "UNTITLED", "slide 120px wide", "a``b title", "x__y heading", "A-1 2"])
def test_title_rejects_noise(raw):
    assert sanitize_title(raw) is None


def test_shouting_title_is_recased():
    assert sanitize_title("GROUNDWATER FLOW IN THE LANL AREA") == "Groundwater Flow in the LANL Area"
    assert sanitize_title("THE END OF THE WORLD AS WE KNOW IT") == "The End of the World as We Know It"


def test_shouting_title_keeps_numbers_roman_and_punctuation():
    out = sanitize_title("(MODEL-BASED) ANALYSIS/DESIGN OF PHASE II WELLS 2010, LA-UR-12-345")
    assert out == "(Model-Based) Analysis/Design of Phase II Wells 2010, LA-UR-12-345"


@pytest.mark.parametrize("raw", [
    "RADIONUCLIDE TRANSPORT MODELING",
    "CHROMIUM PLUME: DOE AND NMED REVIEW",
    "\"QUOTED\" HEADLINE WITH EPA NOTES",
])
def test_recased_titles_gain_lowercase_but_keep_acronyms(raw):
    out = sanitize_title(raw)
    assert re.search(r"[a-z]", out)
    for acronym in ("DOE", "NMED", "EPA"):
        if acronym in raw.split():
            assert acronym in out.split()


def test_mixed_case_title_untouched():
    assert sanitize_title("Chromium plume at LANL") == "Chromium plume at LANL"
    assert not is_shouting("SHORT")
    assert not is_shouting("Mostly Mixed CASE")


def test_authors_email_removed():
    assert sanitize_authors("Smith, J. (jsmith@lanl.gov) and Doe, A.") == "Smith, J. and Doe, A."


def test_authors_spacing_tidied():
    assert sanitize_authors("  Smith ,J.,Doe   A.  ") == "Smith,J.,Doe A."
    assert sanitize_authors("Smith , J. ,  Doe, A.") == "Smith, J., Doe, A."


@pytest.mark.parametrize("raw", [
    "3/14/2012 10:31 AM",
    "Printed 12/01/2010 by jdoe",
    "Slide 800px layout",
    "user%%name here",
    "jsmith",
    "12 34",
    None,
])
def test_authors_rejected(raw):
    assert sanitize_authors(raw) is None


def test_guess_authors_after_label_skips_boilerplate():
    text = "\n".join([
        "LA-UR-10-01234",
        "Approved for public release; distribution is unlimited.",
        "Title:",
        "Flow in fractured rock",
        "Author(s):",
        "Los Alamos National Laboratory",
        "",
        "Jane Roe, John Poe",
        "Intended for: journal",
    ])
    assert guess_authors_from_text(text) == "Jane Roe, John Poe"


def test_guess_authors_fallback_first_plausible_line():
    text = "\n".join([
        "Flow Modeling Report",
        "Prepared under Contract DE-AC52-06NA25396 with ENG support, 2010",
        "Smith and Doe",
        "Roe, Poe",
    ])
    assert guess_authors_from_text(text) == "Smith and Doe"


def test_guess_authors_none():
    assert guess_authors_from_text("Title only\nAnother line") is None
    assert guess_authors_from_text(None) is None


def test_guess_authors_only_scans_first_30_lines():
    text = "\n".join(["filler"] * 30 + ["Smith, Doe"])
    assert guess_authors_from_text(text) is None


def test_filename_helpers():
    assert title_from_filename("Flow_model--final_v2.pdf") == "Flow model final v2"
    assert year_from_filename("Keynote-2019.pdf") == 2019
    assert year_from_filename("talk_2021_v2.pdf") == 2021
    assert year_from_filename("id12019.pdf") is None
    assert year_from_filename("v1850.pdf") is None
    assert year_from_filename(None) is None
