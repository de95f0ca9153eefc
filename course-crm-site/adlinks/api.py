# adlinks/api.py
import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .services import validate_slug

logger = logging.getLogger(__name__)


@csrf_exempt
def api_validate_slug(request):
    """
    POST {"slug": "...", "excludeId": "..."} -> {isValid, isAvailable, message}.
    Malformed slugs are a 200 with isValid false; only a missing slug is a 400.
    """
    if request.method != 'POST':
        return JsonResponse({"error": "Method not allowed"}, status=405)

    try:
        body = json.loads(request.body or b'{}')
    except ValueError:
        return JsonResponse({"error": "Invalid JSON body"}, status=400)
    if not isinstance(body, dict):
        return JsonResponse({"error": "Invalid JSON body"}, status=400)

    slug = body.get("slug")
    if not slug:
        return JsonResponse({"error": "Slug is required"}, status=400)

    exclude_id = body.get("excludeId")
    if exclude_id is not None:
        exclude_id = int(exclude_id) if str(exclude_id).isdigit() else None

    return JsonResponse(validate_slug(slug, exclude_id))
