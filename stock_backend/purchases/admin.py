# purchases/admin.py

from django.contrib import admin

from purchases.models import Delivery, DeliveryLine, PurchaseOrder, PurchaseOrderLine, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "phone", "email", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name")


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    readonly_fields = ("delivered_qty",)


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("po_no", "supplier", "location", "order_date", "status")
    list_filter = ("status", "location")
    search_fields = ("po_no", "supplier__name")
    readonly_fields = ("status", "closed_at")
    inlines = [PurchaseOrderLineInline]


class DeliveryLineInline(admin.TabularInline):
    model = DeliveryLine
    extra = 0
    can_delete = False
    readonly_fields = [f.name for f in DeliveryLine._meta.fields]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Delivery)
class DeliveryAdmin(admin.ModelAdmin):
    """
    Read-only: deliveries are created and posted through the API so that
    stock, WAC and variance NCRs stay consistent.
    """

    list_display = ("delivery_no", "supplier", "location", "period", "status", "total_amount", "has_variance")
    list_filter = ("status", "has_variance", "location")
    search_fields = ("delivery_no", "invoice_no", "supplier__name")
    readonly_fields = [f.name for f in Delivery._meta.fields]
    inlines = [DeliveryLineInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
