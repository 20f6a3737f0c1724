import logging
from django.utils import timezone

logger = logging.getLogger('audit')

class UserActivityLoggingMiddleWare:
    """Logs every request with the caller, path, client IP and response status."""
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        user = getattr(request, 'user', None)
        user = user if user is not None and user.is_authenticated else "Anonymous"
        method = request.method
        path = request.get_full_path()
        ip = self.get_client_ip(request)
        timestamp = timezone.now().isoformat()

        logger.info(f"[{timestamp}] {user} - {method} {path} {response.status_code} - IP: {ip}")

        return response

    def get_client_ip(self, request):
        forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')
