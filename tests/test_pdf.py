from datetime import datetime
from decimal import Decimal

import pytest
from reportlab.platypus import PageBreak, Table

from conftest import make_entry
from hourbook.config import Settings
from hourbook.models import BusinessIdentity, Project, ReferenceData
from hourbook_reports.aggregation import summarize
from hourbook_reports.compiler import compile_report
from hourbook_reports.filters import TimeframeSpec
from hourbook_reports.pdf import build_story, render_report_bytes, render_report_pdf

SETTINGS = Settings(currency="EUR")


@pytest.fixture
def document(reference):
    entries = [make_entry(f"e{n}", "p-a", datetime(2024, 5, 1 + n % 28, 9), 900 + n) for n in range(5)]
    entries.append(make_entry("g", "p-g", datetime(2024, 5, 3), 3600))
    summary = summarize(entries, TimeframeSpec.month("2024-05"), reference)
    identity = BusinessIdentity(name="Kim & Partners", city="Berlin", tax_id="DE1")
    return compile_report(summary, identity, customer=reference.customer("acme"), settings=SETTINGS)


def test_render_bytes_is_pdf(document):
    payload = render_report_bytes(document, invariant=True)

    assert payload.startswith(b"%PDF")


def test_invariant_output_is_reproducible(document):
    assert render_report_bytes(document, invariant=True) == render_report_bytes(document, invariant=True)


def test_render_to_file(document, tmp_path):
    path = render_report_pdf(document, tmp_path / "out" / "report.pdf")

    assert path.exists()
    assert path.read_bytes().startswith(b"%PDF")


def test_story_has_one_table_per_page(reference):
    projects = [Project(id=f"p{n}", customer_id="acme", name=f"Project {n:02d}", hourly_rate=Decimal("10")) for n in range(60)]
    many = ReferenceData.build(reference.customers.values(), projects)
    entries = [make_entry(f"e{n}", f"p{n}", datetime(2024, 5, 1), 60) for n in range(60)]
    document = compile_report(summarize(entries, TimeframeSpec.month("2024-05"), many), None, settings=SETTINGS)

    story = build_story(document)

    assert len(document.pages) == 2
    assert sum(isinstance(item, PageBreak) for item in story) == 1
    assert sum(isinstance(item, Table) and item._cellvalues[0][0] == "Customer" for item in story) == 2
