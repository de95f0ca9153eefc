# leads/api.py
import json
import logging

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from accounts.session import permission_required
from sales.exceptions import SaleError
from .exceptions import InvalidTransition, LeadError
from .models import Lead
from .transitions import transition_lead
from .views import filter_leads

logger = logging.getLogger(__name__)


def _serialize_lead(lead):
    return {
        "id": lead.id,
        "name": lead.name,
        "email": lead.email,
        "phone": lead.full_phone,
        "status": lead.status,
        "saleId": lead.sale_id,
        "notes": lead.notes,
        "assignedTo": lead.assigned_to_id,
        "isDeleted": lead.is_deleted,
        "createdAt": lead.created_at,
    }


def _serialize_history(entry):
    return {
        "previousStatus": entry.previous_status,
        "newStatus": entry.new_status,
        "details": entry.details,
        "performedBy": entry.performed_by_id,
        "performedAt": entry.performed_at,
    }


def _payload(request):
    if request.content_type == 'application/json':
        try:
            body = json.loads(request.body or b'{}')
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
    return request.POST.dict()


@require_GET
@permission_required('leads:read', api=True)
def api_list(request):
    """Leads as JSON, same filters as the list page (?status, ?q, ?show)."""
    qs, _ = filter_leads(request.GET)
    return JsonResponse({"rows": [_serialize_lead(l) for l in qs[:200]]})


@require_GET
@permission_required('leads:read', api=True)
def api_detail(request, pk):
    lead = Lead.objects.filter(pk=pk).first()
    if lead is None:
        return JsonResponse({"error": "Lead not found"}, status=404)
    data = _serialize_lead(lead)
    data["statusHistory"] = [_serialize_history(h) for h in lead.status_history.all()]
    return JsonResponse(data)


@require_POST
@permission_required('leads:write', api=True)
def api_transition(request, pk):
    """
    Body: {"status": "...", "details": "...", "sale": {...}}.
    "sale" is only needed for the move into "sale".
    """
    body = _payload(request)
    if body is None:
        return JsonResponse({"error": "Invalid JSON body"}, status=400)

    lead = Lead.objects.filter(pk=pk).first()
    if lead is None:
        return JsonResponse({"error": "Lead not found"}, status=404)

    new_status = str(body.get("status") or "").strip().lower()
    sale_data = body.get("sale") if isinstance(body.get("sale"), dict) else None
    if sale_data is not None:
        sale_data = {
            k: v for k, v in {
                "payment_plan": sale_data.get("paymentPlan"),
                "product": sale_data.get("product"),
                "total_amount": sale_data.get("totalAmount"),
                "payment_proofs": sale_data.get("paymentProofs"),
            }.items() if v is not None
        }
        if "payment_proofs" in sale_data:
            if not isinstance(sale_data["payment_proofs"], list):
                return JsonResponse({"error": "paymentProofs must be a list"}, status=400)
            sale_data["payment_proofs"] = [
                {"amount": p.get("amount"), "image_url": p.get("imageUrl", ""),
                 "description": p.get("description", "")}
                for p in sale_data["payment_proofs"] if isinstance(p, dict)
            ]

    try:
        entry = transition_lead(lead, new_status, request.admin_session,
                                details=str(body.get("details") or ""), sale_data=sale_data)
    except InvalidTransition as exc:
        return JsonResponse({"error": str(exc), "code": "invalid_transition"}, status=409)
    except (LeadError, SaleError) as exc:
        return JsonResponse({"error": str(exc)}, status=400)

    lead.refresh_from_db()
    return JsonResponse({"ok": True, "status": lead.status, "saleId": lead.sale_id,
                         "history": _serialize_history(entry)})
