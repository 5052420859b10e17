from datetime import datetime
from io import BytesIO
from typing import Tuple
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from bloodlink.models.donation import Donation
from bloodlink.models.user import User
from bloodlink.utils.exceptions import AuthorizationError, NotFoundError
from bloodlink.utils.logging_config import get_logger

logger = get_logger(__name__)

MARGIN = 50


def format_long_date(value: datetime) -> str:
    """e.g. ``March 5, 2025``"""
    return f"{value:%B} {value.day}, {value.year}"


def render_certificate(
    donor_name: str, donation_date: datetime, blood_group: str, blood_bank_name: str
) -> bytes:
    """Fixed-layout A4 donation certificate"""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle("Blood Donation Certificate")
    width, height = A4
    center = width / 2
    y = height - MARGIN - 40

    def line(text: str, font: str, size: int, gap: float, align: str = "center") -> None:
        nonlocal y
        pdf.setFont(font, size)
        if align == "right":
            pdf.drawRightString(width - MARGIN, y, text)
        else:
            pdf.drawCentredString(center, y, text)
        y -= gap

    line("Blood Donation Certificate", "Helvetica-Bold", 24, 70)
    line("This is to certify that", "Helvetica", 14, 40)
    line(donor_name, "Helvetica-Bold", 20, 40)
    line("has voluntarily donated blood on", "Helvetica", 14, 28)
    line(format_long_date(donation_date), "Helvetica-Bold", 16, 45)
    line(f"Blood Group: {blood_group}", "Helvetica", 14, 28)
    line(f"Donated at: {blood_bank_name}", "Helvetica", 14, 60)
    line(
        "This certificate is issued in recognition of the noble act of blood donation.",
        "Helvetica",
        12,
        70,
    )
    line("Authorized Signatory", "Helvetica", 12, 18, align="right")
    line(blood_bank_name, "Helvetica", 12, 18, align="right")

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class CertificateService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate(self, donation_id: UUID, donor: User) -> Tuple[str, bytes]:
        """Render the certificate for one of the donor's own donations"""
        result = await self.db.execute(
            select(Donation)
            .options(selectinload(Donation.donor), selectinload(Donation.blood_bank))
            .where(Donation.id == donation_id)
        )
        donation = result.scalar_one_or_none()
        if donation is None:
            raise NotFoundError("Donation not found")
        if donation.donor_id != donor.id:
            raise AuthorizationError("Not authorized to access this certificate")

        content = await run_in_threadpool(
            render_certificate,
            donation.donor.name,
            donation.donation_date,
            donation.blood_group.value,
            donation.blood_bank.name,
        )

        if not donation.certificate_generated:
            donation.certificate_generated = True
            await self.db.commit()

        logger.info(
            "Certificate generated",
            extra={"event_type": "certificate_generated", "donation_id": str(donation.id)},
        )
        return f"donation-certificate-{donation.id}.pdf", content
