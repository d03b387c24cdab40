"""
Work report PDFs
Technical work report (Laporan Pekerjaan Teknis) and BAST handover certificate
"""

import io
import logging
from datetime import date, datetime
from typing import Callable, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    Image,
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from ..config import COMPANY_NAME
from ..shared.validators import sanitize_string
from ..storage import decode_data_url, download_bytes

logger = logging.getLogger(__name__)

PHOTO_WIDTH = 80 * mm
PHOTO_HEIGHT = 60 * mm
SIGNATURE_WIDTH = 50 * mm
SIGNATURE_HEIGHT = 20 * mm

ImageLoader = Callable[[str], bytes]


def load_image_bytes(ref: str) -> bytes:
    """Resolve a data URL or an object storage key to raw image bytes"""
    if ref.startswith("data:"):
        decoded = decode_data_url(ref)
        if not decoded:
            raise ValueError("Unsupported data URL")
        return decoded[1]
    return download_bytes(ref)


def format_date_id(value) -> str:
    """dd/mm/yyyy as printed on Indonesian forms"""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    return str(value)


class NumberedCanvas(canvas.Canvas):
    """Canvas that knows the page total so the footer can print 'Halaman i dari n'"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        page_width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(
            page_width / 2, 10 * mm, f"Halaman {self._pageNumber} dari {total}"
        )


class _ReportPDFBase:
    """Shared page setup, styles and image handling"""

    def __init__(self, image_loader: Optional[ImageLoader] = None):
        self.image_loader = image_loader or load_image_bytes

        self.page_width, self.page_height = A4
        self.margin = 20 * mm
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#428bca")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

        styles = getSampleStyleSheet()
        self.title_style = ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=18,
            textColor=self.dark_gray,
            alignment=1,
            spaceAfter=2,
        )
        self.subtitle_style = ParagraphStyle(
            "ReportSubtitle", parent=styles["Normal"], fontSize=10, alignment=1, spaceAfter=10
        )
        self.heading_style = ParagraphStyle(
            "ReportHeading",
            parent=styles["Heading2"],
            fontSize=11,
            textColor=self.dark_gray,
            spaceBefore=10,
            spaceAfter=6,
        )
        self.body_style = ParagraphStyle(
            "ReportBody", parent=styles["Normal"], fontSize=10, textColor=self.dark_gray, leading=13
        )
        self.small_style = ParagraphStyle(
            "ReportSmall", parent=self.body_style, fontSize=8, alignment=1
        )

    def _p(self, text, style=None) -> Paragraph:
        escaped = sanitize_string(str(text)) if text not in (None, "") else "-"
        return Paragraph(escaped.replace("\n", "<br/>"), style or self.body_style)

    def _header(self, story: list, title: str):
        story.append(Paragraph(title, self.title_style))
        story.append(Paragraph(sanitize_string(COMPANY_NAME), self.subtitle_style))
        line = Table([[""]], colWidths=[self.content_width], rowHeights=[1])
        line.setStyle(TableStyle([("LINEABOVE", (0, 0), (-1, -1), 0.5, self.dark_gray)]))
        story.append(line)
        story.append(Spacer(1, 4 * mm))

    def _key_value_table(self, rows: list) -> Table:
        data = [[self._p(label), self._p(value)] for label, value in rows]
        table = Table(data, colWidths=[45 * mm, self.content_width - 45 * mm])
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 10),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
                    ("TOPPADDING", (0, 0), (-1, -1), 3),
                ]
            )
        )
        return table

    def _placeholder(self, width, height, text: str) -> Table:
        box = Table([[Paragraph(text, self.small_style)]], colWidths=[width], rowHeights=[height])
        box.setStyle(
            TableStyle(
                [
                    ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ]
            )
        )
        return box

    def _image(self, ref: Optional[str], width, height, failure_text: str):
        """Flowable for an image reference; unreadable images become a placeholder box"""
        if not ref:
            return self._placeholder(width, height, failure_text)
        try:
            raw = self.image_loader(ref)
            reader = ImageReader(io.BytesIO(raw))
            reader.getSize()
            return Image(io.BytesIO(raw), width=width, height=height, kind="proportional")
        except Exception as e:
            logger.warning(f"⚠️ Could not load image for PDF: {str(e)}")
            return self._placeholder(width, height, failure_text)

    def _signature_block(self, left: tuple, right: tuple, signed_on) -> KeepTogether:
        """left/right are (label, name, image_ref)"""
        cells = []
        for label, name, ref in (left, right):
            if ref:
                image = self._image(ref, SIGNATURE_WIDTH, SIGNATURE_HEIGHT, "Tanda tangan tidak tersedia")
            else:
                image = Spacer(SIGNATURE_WIDTH, SIGNATURE_HEIGHT)
            cells.append([image, self._p(label), self._p(name or "")])

        table = Table(
            [[cells[0], cells[1]]],
            colWidths=[self.content_width / 2, self.content_width / 2],
        )
        table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
        return KeepTogether(
            [
                Paragraph("Tanda Tangan", self.heading_style),
                table,
                Spacer(1, 3 * mm),
                self._p(f"Tanggal: {format_date_id(signed_on)}"),
            ]
        )

    def _build(self, story: list, title: str) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=title,
        )
        doc.build(story, canvasmaker=NumberedCanvas)
        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes


class TechnicalReportPDFGenerator(_ReportPDFBase):
    """
    Technical work report for one technician's work log.

    `data` holds pre-computed fields: order_number, service_title,
    client_name, location, scheduled_date, technician_name, problem, tindakan,
    optional rincian_pekerjaan, rincian_kerusakan, lama_kerja, jarak_tempuh,
    spareparts [{name, quantity, unit, notes}], photos, photo_captions,
    signature_technician, signature_client (+ _name) and signature_date.
    """

    def __init__(self, data: dict, image_loader: Optional[ImageLoader] = None):
        super().__init__(image_loader)
        self.data = data

    def generate(self) -> bytes:
        data = self.data
        logger.info(f"📄 Generating technical report PDF for order {data.get('order_number')}")

        story = []
        self._header(story, "LAPORAN PEKERJAAN TEKNIS")

        story.append(Paragraph("Informasi Order", self.heading_style))
        story.append(
            self._key_value_table(
                [
                    ("No. Order", data.get("order_number")),
                    ("Layanan", data.get("service_title")),
                    ("Klien", data.get("client_name")),
                    ("Lokasi", data.get("location")),
                    ("Tanggal", format_date_id(data.get("scheduled_date"))),
                    ("Teknisi", data.get("technician_name")),
                ]
            )
        )

        story.append(Paragraph("Detail Pekerjaan", self.heading_style))
        details = [("Problem", data.get("problem")), ("Tindakan", data.get("tindakan"))]
        if data.get("rincian_pekerjaan"):
            details.append(("Rincian Pekerjaan", data["rincian_pekerjaan"]))
        if data.get("rincian_kerusakan"):
            details.append(("Rincian Kerusakan", data["rincian_kerusakan"]))
        if data.get("lama_kerja"):
            details.append(("Lama Kerja", f"{data['lama_kerja']} jam"))
        if data.get("jarak_tempuh"):
            details.append(("Jarak Tempuh", f"{data['jarak_tempuh']} km"))
        story.append(self._key_value_table(details))

        spareparts = data.get("spareparts") or []
        if spareparts:
            story.append(Paragraph("Sparepart yang Digunakan", self.heading_style))
            story.append(self._spareparts_table(spareparts))

        photos = data.get("photos") or []
        if photos:
            story.append(PageBreak())
            story.append(Paragraph("Dokumentasi Foto Pekerjaan", self.heading_style))
            story.append(self._photo_grid(photos, data.get("photo_captions") or []))

        story.append(Spacer(1, 6 * mm))
        story.append(
            self._signature_block(
                (
                    "Teknisi",
                    data.get("signature_technician_name") or data.get("technician_name"),
                    data.get("signature_technician"),
                ),
                ("Klien / PIC", data.get("signature_client_name"), data.get("signature_client")),
                data.get("signature_date"),
            )
        )

        pdf_bytes = self._build(story, f"Laporan Teknis {data.get('order_number', '')}")
        logger.info(f"✅ Generated technical report PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _spareparts_table(self, spareparts: list) -> Table:
        rows = [["No", "Nama Sparepart", "Jumlah", "Satuan", "Keterangan"]]
        for idx, part in enumerate(spareparts, start=1):
            quantity = part.get("quantity")
            if isinstance(quantity, float) and quantity.is_integer():
                quantity = int(quantity)
            rows.append(
                [
                    str(idx),
                    self._p(part.get("name")),
                    str(quantity if quantity is not None else ""),
                    part.get("unit") or "-",
                    self._p(part.get("notes") or "-"),
                ]
            )

        table = Table(
            rows,
            colWidths=[12 * mm, 60 * mm, 20 * mm, 22 * mm, self.content_width - 114 * mm],
            repeatRows=1,
        )
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                    ("FONT", (0, 1), (-1, -1), "Helvetica", 9),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ]
            )
        )
        return table

    def _photo_grid(self, photos: list, captions: list) -> Table:
        """Two photos per row, caption under each; unloadable photos are drawn as boxes"""
        cells = []
        for i, ref in enumerate(photos):
            caption = captions[i] if i < len(captions) and captions[i] else f"Foto {i + 1}"
            cells.append(
                [
                    self._image(ref, PHOTO_WIDTH, PHOTO_HEIGHT, "Foto tidak dapat dimuat"),
                    self._p(caption, self.small_style),
                ]
            )
        if len(cells) % 2:
            cells.append("")

        rows = [cells[i : i + 2] for i in range(0, len(cells), 2)]
        table = Table(rows, colWidths=[self.content_width / 2, self.content_width / 2])
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
                ]
            )
        )
        return table


class BastPDFGenerator(_ReportPDFBase):
    """
    Berita Acara Serah Terima.

    `data` holds bast_number, order_number, service_title, client_name,
    location, technician_name, completed_on, status, optional spk summary
    fields (work_description, findings, actions_taken, recommendations,
    materials [{name, qty, unit}]) and signature refs/names.
    """

    def __init__(self, data: dict, image_loader: Optional[ImageLoader] = None):
        super().__init__(image_loader)
        self.data = data

    def generate(self) -> bytes:
        data = self.data
        logger.info(f"📄 Generating BAST PDF {data.get('bast_number')}")

        story = []
        self._header(story, "BERITA ACARA SERAH TERIMA")
        story.append(Paragraph(f"No. {sanitize_string(data.get('bast_number') or '')}", self.subtitle_style))

        story.append(Paragraph("Informasi Pekerjaan", self.heading_style))
        story.append(
            self._key_value_table(
                [
                    ("No. Order", data.get("order_number")),
                    ("Layanan", data.get("service_title")),
                    ("Klien", data.get("client_name")),
                    ("Lokasi", data.get("location")),
                    ("Teknisi", data.get("technician_name")),
                    ("Tanggal Selesai", format_date_id(data.get("completed_on"))),
                    ("Status", data.get("status")),
                ]
            )
        )

        summary = [
            ("Uraian Pekerjaan", data.get("work_description")),
            ("Temuan", data.get("findings")),
            ("Tindakan", data.get("actions_taken")),
            ("Rekomendasi", data.get("recommendations")),
        ]
        if any(value for _, value in summary):
            story.append(Paragraph("Ringkasan SPK", self.heading_style))
            story.append(self._key_value_table([row for row in summary if row[1]]))

        materials = data.get("materials") or []
        if materials:
            story.append(Paragraph("Material", self.heading_style))
            rows = [["No", "Material", "Jumlah", "Satuan"]]
            rows += [
                [str(i), self._p(m.get("name")), str(m.get("qty", "")), m.get("unit") or "-"]
                for i, m in enumerate(materials, start=1)
            ]
            table = Table(rows, colWidths=[12 * mm, 90 * mm, 25 * mm, self.content_width - 127 * mm])
            table.setStyle(
                TableStyle(
                    [
                        ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                        ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ]
                )
            )
            story.append(table)

        story.append(Spacer(1, 6 * mm))
        story.append(
            self._p(
                "Dengan ini pihak klien menyatakan bahwa pekerjaan di atas telah selesai "
                "dilaksanakan dan diterima dengan baik."
            )
        )
        story.append(Spacer(1, 4 * mm))
        story.append(
            self._signature_block(
                ("Teknisi", data.get("technician_name"), data.get("technician_signature")),
                ("Klien / PIC", data.get("client_name"), data.get("client_signature")),
                data.get("approved_at"),
            )
        )

        pdf_bytes = self._build(story, f"BAST {data.get('bast_number', '')}")
        logger.info(f"✅ Generated BAST PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes
