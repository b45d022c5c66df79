"""Invoice rendering for billing transactions."""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.template.loader import render_to_string
from django.utils import timezone

from care.models import Transaction
from care.services.records import persist

logger = logging.getLogger(__name__)


def invoice_filename(txn: Transaction, now=None) -> str:
    now = timezone.localtime(now or timezone.now())
    return f"invoices/invoice_{txn.id}_{now:%Y%m%d%H%M%S}.html"


def render_invoice(txn: Transaction) -> str:
    return render_to_string('care/invoice.html', {
        'clinic_name': settings.CLINIC_NAME,
        'txn': txn,
        'patient': txn.patient,
        'issued_at': timezone.localtime(),
    })


def generate_invoice(txn: Transaction) -> str:
    """Write the invoice through default storage and return its URL."""
    html = render_invoice(txn)
    name = default_storage.save(invoice_filename(txn), ContentFile(html.encode('utf-8')))
    txn.invoice_generated = True
    txn.invoice_path = name
    persist(txn, update_fields=['invoice_generated', 'invoice_path', 'updated_at'])
    logger.info('invoice %s written to %s', txn.invoice_number, name)
    return default_storage.url(name)
