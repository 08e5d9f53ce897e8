import io
from datetime import datetime
from typing import List, Sequence

import fitz  # PyMuPDF
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

PDF_MEDIA_TYPE = "application/pdf"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COLLECTION_COLUMNS = [
    "Résident", "Agent", "Adresse", "Zone", "Type de déchet",
    "Statut", "Priorité", "Date prévue", "Date de réalisation", "Créée le",
]
REPORT_COLUMNS = [
    "Titre", "Type", "Statut", "Priorité", "Zone", "Signalé par", "Résolu par", "Créé le",
]

# Mise en page PDF (A4 paysage, en points)
PAGE_WIDTH, PAGE_HEIGHT = 842, 595
MARGIN = 36
FONT = "helv"
FONT_BOLD = "hebo"
FONT_SIZE = 8
LINE_HEIGHT = 14


def _format_date(value) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    return value or ""


def _name(ref) -> str:
    if isinstance(ref, dict):
        return ref.get("name") or ""
    return "" if ref is None else str(ref)


def collection_rows(collections: Sequence[dict]) -> List[list]:
    """Extrait une ligne par collecte (références déjà peuplées)."""
    rows = []
    for c in collections:
        address = c.get("address") or {}
        rows.append([
            _name(c.get("resident")),
            _name(c.get("collector")) or "Non assigné",
            ", ".join(part for part in (address.get("street"), address.get("city")) if part),
            c.get("zone", ""),
            c.get("wasteType", ""),
            c.get("status", ""),
            c.get("priority", ""),
            _format_date(c.get("scheduledDate")),
            _format_date(c.get("completedDate")),
            _format_date(c.get("createdAt")),
        ])
    return rows


def report_rows(reports: Sequence[dict]) -> List[list]:
    rows = []
    for r in reports:
        rows.append([
            r.get("title", ""),
            r.get("type", ""),
            r.get("status", ""),
            r.get("priority", ""),
            r.get("zone") or "",
            _name(r.get("reportedBy")),
            _name(r.get("resolvedBy")),
            _format_date(r.get("createdAt")),
        ])
    return rows


def _fit(text: str, width: float) -> str:
    """Tronque le texte pour qu'il tienne dans la largeur de colonne."""
    text = str(text)
    if fitz.get_text_length(text, fontname=FONT, fontsize=FONT_SIZE) <= width:
        return text
    while text and fitz.get_text_length(text + "...", fontname=FONT, fontsize=FONT_SIZE) > width:
        text = text[:-1]
    return text + "..."


def render_pdf(title: str, columns: Sequence[str], rows: Sequence[Sequence]) -> bytes:
    """Génère un tableau PDF paginé (titre, date de génération, en-têtes répétés)."""
    column_width = (PAGE_WIDTH - 2 * MARGIN) / len(columns)
    generated = f"Généré le {datetime.now().strftime('%Y-%m-%d %H:%M')} - {len(rows)} enregistrement(s)"

    with fitz.open() as doc:
        page, y = None, 0
        for index in range(max(len(rows), 1)):
            if page is None or y > PAGE_HEIGHT - MARGIN:
                page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                y = MARGIN + 10
                if doc.page_count == 1:
                    page.insert_text((MARGIN, y), title, fontname=FONT_BOLD, fontsize=16)
                    y += 18
                    page.insert_text((MARGIN, y), generated, fontname=FONT, fontsize=FONT_SIZE)
                    y += LINE_HEIGHT * 2
                for col, header in enumerate(columns):
                    page.insert_text((MARGIN + col * column_width, y), _fit(header, column_width - 4),
                                     fontname=FONT_BOLD, fontsize=FONT_SIZE)
                page.draw_line((MARGIN, y + 4), (PAGE_WIDTH - MARGIN, y + 4))
                y += LINE_HEIGHT

            if not rows:
                page.insert_text((MARGIN, y), "Aucun enregistrement", fontname=FONT, fontsize=FONT_SIZE)
                break
            for col, value in enumerate(rows[index]):
                page.insert_text((MARGIN + col * column_width, y), _fit(value, column_width - 4),
                                 fontname=FONT, fontsize=FONT_SIZE)
            y += LINE_HEIGHT

        return doc.tobytes()


def render_excel(title: str, columns: Sequence[str], rows: Sequence[Sequence]) -> bytes:
    """Génère un classeur d'une feuille : en-tête en gras puis une ligne par enregistrement."""
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]  # limite Excel

    ws.append(list(columns))
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor="2E7D32")
    for row in rows:
        ws.append([str(value) if value is not None else "" for value in row])

    for col, header in enumerate(columns, start=1):
        longest = max([len(str(header))] + [len(str(row[col - 1])) for row in rows])
        ws.column_dimensions[get_column_letter(col)].width = min(longest + 2, 50)
    ws.freeze_panes = "A2"

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
