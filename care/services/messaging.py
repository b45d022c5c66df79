"""
SMS and WhatsApp delivery through the Twilio REST API.

Sending is best effort: provider errors and network failures are
logged and reported as ``False``, never raised. Nothing is sent unless
``SMS_ENABLE`` is on.
"""
from __future__ import annotations

import logging
import re

import requests
from django.conf import settings
from django.utils import timezone

from care.models import Appointment
from care.services.records import persist

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = 'https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json'
ACCEPTED_STATUSES = {'queued', 'accepted', 'sending', 'sent', 'delivered'}

CHANNEL_SMS = 'sms'
CHANNEL_WHATSAPP = 'whatsapp'


def format_phone_number(raw: str, country_code: str | None = None) -> str:
    """Normalise a local or international number to E.164."""
    raw = (raw or '').strip()
    digits = re.sub(r'\D', '', raw)
    if not digits:
        return ''
    if raw.startswith('+'):
        return f'+{digits}'
    cc = country_code or settings.SMS_DEFAULT_COUNTRY_CODE
    if digits.startswith('00'):
        return f'+{digits[2:]}'
    if digits.startswith(cc) and len(digits) > 10:
        return f'+{digits}'
    if digits.startswith('0'):
        return f'+{cc}{digits[1:]}'
    if len(digits) == 10:
        return f'+{cc}{digits}'
    return f'+{digits}'


def _send(to: str, body: str, *, channel: str) -> bool:
    if not settings.SMS_ENABLE:
        logger.info('messaging disabled, %s to %s not sent', channel, to)
        return False
    number = format_phone_number(to)
    if not number:
        logger.warning('no usable phone number for %s message', channel)
        return False
    sender = settings.TWILIO_FROM_NUMBER
    if channel == CHANNEL_WHATSAPP:
        sender = f'whatsapp:{settings.TWILIO_WHATSAPP_FROM or settings.TWILIO_FROM_NUMBER}'
        number = f'whatsapp:{number}'
    try:
        r = requests.post(
            TWILIO_MESSAGES_URL.format(sid=settings.TWILIO_ACCOUNT_SID),
            data={'From': sender, 'To': number, 'Body': body},
            auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            timeout=settings.SMS_TIMEOUT,
        )
        data = r.json()
    except (requests.RequestException, ValueError):
        logger.exception('%s to %s failed', channel, number)
        return False
    if r.status_code >= 400 or data.get('error_code'):
        logger.warning(
            '%s to %s rejected: %s %s', channel, number,
            data.get('error_code') or data.get('code'), data.get('error_message') or data.get('message'),
        )
        return False
    status = (data.get('status') or '').lower()
    if status not in ACCEPTED_STATUSES:
        logger.warning('%s to %s ended in status %s', channel, number, status or '?')
        return False
    logger.info('%s to %s accepted (%s, sid=%s)', channel, number, status, data.get('sid'))
    return True


def send_sms(to: str, body: str) -> bool:
    return _send(to, body, channel=CHANNEL_SMS)


def send_whatsapp(to: str, body: str) -> bool:
    return _send(to, body, channel=CHANNEL_WHATSAPP)


def appointment_reminder(appointment: Appointment) -> str:
    when = timezone.localtime(appointment.appointment_date)
    text = (
        f'Dear {appointment.patient.full_name}, your {appointment.appointment_type} appointment '
        f'at {settings.CLINIC_NAME} is on {when:%d %b %Y} at {when:%I:%M %p}.'
    )
    if appointment.doctor_id:
        text += f' Doctor: Dr. {appointment.doctor.full_name}.'
    return text


def notify_appointment(appointment: Appointment, channel: str = CHANNEL_SMS) -> bool:
    """Send the reminder and flag the appointment on success."""
    body = appointment_reminder(appointment)
    to = appointment.patient.contact_number
    if channel == CHANNEL_WHATSAPP:
        sent = send_whatsapp(to, body)
        flag = 'whatsapp_sent'
    else:
        sent = send_sms(to, body)
        flag = 'sms_sent'
    if sent:
        setattr(appointment, flag, True)
        persist(appointment, update_fields=[flag, 'updated_at'])
    return sent
