from django.conf import settings
from rest_framework.exceptions import ValidationError


def validate_image(f) -> None:
    """Reject uploads over ``UPLOAD_MAX_MB`` or outside ``ALLOWED_UPLOAD_TYPES``."""
    size_mb = (f.size or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValidationError('File too large')
    ctype = getattr(f, 'content_type', '') or ''
    if not any(ctype.startswith(prefix) for prefix in settings.ALLOWED_UPLOAD_TYPES):
        raise ValidationError('Unsupported file type')
