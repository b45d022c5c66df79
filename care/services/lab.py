import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from care.models import LabTest, User
from care.services.audit import log_action

logger = logging.getLogger(__name__)


def validate_report_file(f) -> None:
    if f is None or not (f.size or 0):
        raise ValidationError({'file': 'Please select a non-empty report file.'})
    size_mb = f.size / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValidationError({'file': f'File exceeds {settings.UPLOAD_MAX_MB} MB.'})
    ctype = getattr(f, 'content_type', '') or ''
    if not any(ctype.startswith(prefix) for prefix in settings.ALLOWED_UPLOAD_TYPES):
        raise ValidationError({'file': f'Unsupported file type {ctype or "unknown"}.'})


@transaction.atomic
def attach_report(test: LabTest, f, *, notes: Optional[str] = None, actor: Optional[User] = None) -> LabTest:
    """Store the report file and mark the test completed."""
    validate_report_file(f)
    if test.report_file:
        test.report_file.delete(save=False)
    test.report_file.save(f.name, f, save=False)
    if notes is not None:
        test.report_notes = notes
    test.status = 'Completed'
    test.report_uploaded_at = timezone.now()
    test.save()
    log_action(user=actor, action='lab_report_upload', object_type='lab_test', object_id=test.id,
               detail={'file': test.report_file.name, 'size': f.size})
    logger.info('report for lab test %s stored at %s', test.id, test.report_file.name)
    return test
