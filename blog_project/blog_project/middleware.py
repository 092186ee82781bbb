import logging
import time
import uuid

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """
    Tag every request with an X-Request-ID and write one access line per
    response.

    An incoming X-Request-ID header (e.g. set by a load balancer) is reused
    so the id can be followed across services.
    """

    header_name = "X-Request-ID"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex
        request.request_id = request_id

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        response[self.header_name] = request_id
        logger.info(
            "%s %s -> %s (%.1fms) [%s]",
            request.method,
            request.get_full_path(),
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
