import io
from datetime import datetime, timezone

import fitz
from bson import ObjectId
from openpyxl import load_workbook

from utils.exports import (
    COLLECTION_COLUMNS,
    REPORT_COLUMNS,
    collection_rows,
    render_excel,
    render_pdf,
    report_rows,
)


def test_collection_rows_use_populated_names():
    rows = collection_rows([{
        "resident": {"_id": ObjectId(), "name": "Alice"},
        "collector": None,
        "address": {"street": "1 Main Street", "city": "Nairobi"},
        "zone": "Zone-A",
        "wasteType": "organic",
        "status": "pending",
        "priority": "low",
        "createdAt": datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc),
    }])
    assert rows == [[
        "Alice", "Non assigné", "1 Main Street, Nairobi", "Zone-A", "organic",
        "pending", "low", "", "", "2024-06-01 09:30",
    ]]


def test_report_rows():
    rows = report_rows([{"title": "Bin", "type": "full-bin", "status": "open", "priority": "high",
                         "reportedBy": {"name": "Bob"}}])
    assert rows == [["Bin", "full-bin", "open", "high", "", "Bob", "", ""]]


def test_pdf_is_paginated():
    rows = [[f"Title {i}", "full-bin", "open", "high", "Zone-A", "Bob", "", "2024-06-01"] for i in range(80)]
    content = render_pdf("Signalements", REPORT_COLUMNS, rows)
    assert content.startswith(b"%PDF")
    with fitz.open(stream=content, filetype="pdf") as doc:
        assert doc.page_count > 1
        assert "Title 0" in doc[0].get_text()


def test_pdf_without_rows():
    content = render_pdf("Collectes", COLLECTION_COLUMNS, [])
    with fitz.open(stream=content, filetype="pdf") as doc:
        assert doc.page_count == 1
        assert "Aucun enregistrement" in doc[0].get_text()


def test_excel_layout():
    content = render_excel("Signalements", REPORT_COLUMNS, [["Bin", "full-bin", "open", "high", "", "Bob", "", ""]])
    ws = load_workbook(io.BytesIO(content)).active
    assert ws.title == "Signalements"
    assert [c.value for c in ws[1]] == REPORT_COLUMNS
    assert ws["A1"].font.bold
    assert ws["A2"].value == "Bin"
    assert ws.max_row == 2


class TestExportEndpoints:

    def test_collections_pdf(self, client, admin, resident, make_collection):
        make_collection(resident)
        response = client.get("/api/collections/export/pdf", headers=admin.headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == "attachment; filename=collections.pdf"
        assert response.content.startswith(b"%PDF")

    def test_reports_excel(self, client, admin, resident, make_report):
        make_report(resident, title="Overflow")
        response = client.get("/api/reports/export/excel", headers=admin.headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert response.headers["content-disposition"] == "attachment; filename=reports.xlsx"
        ws = load_workbook(io.BytesIO(response.content)).active
        assert ws["A2"].value == "Overflow"

    def test_exports_are_admin_only(self, client, collector_a):
        for url in ("/api/collections/export/pdf", "/api/collections/export/excel",
                    "/api/reports/export/pdf", "/api/reports/export/excel"):
            assert client.get(url, headers=collector_a.headers).status_code == 403
