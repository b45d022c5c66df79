from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from care.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Append one row to the audit trail. Anonymous callers are stored as NULL."""
    return AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )


def client_ip(request) -> Optional[str]:
    return request.META.get('REMOTE_ADDR') if request is not None else None
