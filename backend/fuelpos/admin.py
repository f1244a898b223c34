from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AuditLog, Delivery, FuelType, Nozzle, Pump, PumpReading, Sale, Shift, StockMovement, Tank, TankDip, User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "full_name", "role", "is_active", "is_staff")
    list_filter = ("role", "is_active")
    fieldsets = BaseUserAdmin.fieldsets + (("Station", {"fields": ("full_name", "phone", "role")}),)


@admin.register(FuelType)
class FuelTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "price_per_litre", "is_active")


class NozzleInline(admin.TabularInline):
    model = Nozzle
    extra = 0
    readonly_fields = ("nozzle_number", "fuel_type", "tank", "is_active", "retired_at")
    can_delete = False


@admin.register(Pump)
class PumpAdmin(admin.ModelAdmin):
    list_display = ("pump_number", "name", "is_active")
    inlines = [NozzleInline]


@admin.register(Tank)
class TankAdmin(admin.ModelAdmin):
    list_display = ("tank_number", "fuel_type", "current_stock", "capacity_litres", "reorder_level", "is_active")
    # stock only moves through the ledger
    readonly_fields = ("current_stock",)


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "shift_date", "status", "opening_cash", "closing_cash")
    list_filter = ("status", "shift_date")


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("id", "shift", "nozzle", "litres_dispensed", "total_amount", "payment_method", "created_at")
    list_filter = ("payment_method",)

    def has_change_permission(self, request, obj=None):
        return False


admin.site.register(PumpReading)
admin.site.register(Delivery)
admin.site.register(TankDip)
admin.site.register(StockMovement)
admin.site.register(AuditLog)
