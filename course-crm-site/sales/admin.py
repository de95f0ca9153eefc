from django import forms
from django.contrib import admin

from .models import PaymentProof, Sale, SaleStatusHistory
from .services import EDITABLE_SALE_FIELDS, covers_access, update_sale


class PaymentProofInline(admin.TabularInline):
    model = PaymentProof
    extra = 0
    readonly_fields = ('amount', 'image_url', 'description', 'uploaded_by', 'uploaded_at')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class SaleStatusHistoryInline(admin.TabularInline):
    model = SaleStatusHistory
    extra = 0
    readonly_fields = ('action', 'details', 'amount', 'performed_by', 'performed_at')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class SaleAdminForm(forms.ModelForm):
    class Meta:
        model = Sale
        fields = list(EDITABLE_SALE_FIELDS)

    def clean(self):
        cleaned = super().clean()
        total = cleaned.get('total_amount')
        if self.instance.pk and total is not None and not covers_access(self.instance, total):
            self.add_error('total_amount',
                           f'Access is granted: the total cannot exceed twice the paid amount '
                           f'({self.instance.paid_amount}).')
        return cleaned


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    form = SaleAdminForm
    list_display  = ('id', 'lead', 'product', 'payment_plan', 'total_amount', 'paid_amount',
                     'access_granted', 'access_end_date', 'exemption_granted', 'created_at')
    list_filter   = ('product', 'payment_plan', 'access_granted', 'exemption_granted')
    search_fields = ('lead__name', 'lead__email', 'lead__phone')
    date_hierarchy = 'created_at'
    ordering = ('-created_at',)
    # money and access only change through the service layer
    readonly_fields = ('lead', 'sale_user', 'paid_amount', 'access_granted', 'access_start_date',
                       'access_end_date', 'exemption_granted', 'exemption_reason', 'exemption_granted_by')
    inlines = [PaymentProofInline, SaleStatusHistoryInline]

    def has_add_permission(self, request):
        # sales are born from a lead transition
        return False

    def save_model(self, request, obj, form, change):
        fields = {name: form.cleaned_data[name] for name in form.changed_data if name in EDITABLE_SALE_FIELDS}
        if fields:
            update_sale(Sale(pk=obj.pk), request.user, **fields)
            obj.refresh_from_db()
