# fuelpos/api/serializers.py
from django.contrib.auth import get_user_model
from rest_framework import serializers

from fuelpos.models import (
    Delivery, FuelType, Nozzle, Pump, PumpReading, Sale, Shift, StockMovement, Tank, TankDip,
)

User = get_user_model()


# ---------------------------
# Read side
# ---------------------------
class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username", "full_name", "email", "phone", "role", "is_active")
        read_only_fields = fields


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username", "full_name")


class FuelTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = FuelType
        fields = ("id", "name", "code", "price_per_litre", "is_active", "updated_at")


class FuelTypeBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = FuelType
        fields = ("id", "name", "code", "price_per_litre")


class TankSerializer(serializers.ModelSerializer):
    fuel_type = FuelTypeBriefSerializer(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Tank
        fields = (
            "id", "tank_number", "fuel_type", "capacity_litres", "current_stock", "reorder_level",
            "is_low_stock", "is_active", "retired_at", "updated_at",
        )


class NozzleSerializer(serializers.ModelSerializer):
    fuel_type = FuelTypeBriefSerializer(read_only=True)
    tank_number = serializers.SerializerMethodField()

    class Meta:
        model = Nozzle
        fields = ("id", "nozzle_number", "fuel_type", "tank_id", "tank_number", "is_active")

    def get_tank_number(self, obj):
        return obj.tank.tank_number if obj.tank_id else None


class PumpSerializer(serializers.ModelSerializer):
    nozzles = serializers.SerializerMethodField()

    class Meta:
        model = Pump
        fields = ("id", "pump_number", "name", "is_active", "retired_at", "nozzles")

    def get_nozzles(self, obj):
        nozzles = getattr(obj, "active_nozzles", None)
        if nozzles is None:
            nozzles = obj.nozzles.filter(is_active=True).select_related("fuel_type", "tank")
        return NozzleSerializer(nozzles, many=True).data


class ShiftSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)

    class Meta:
        model = Shift
        fields = (
            "id", "user", "shift_date", "start_time", "end_time", "opening_cash", "closing_cash",
            "status", "notes",
        )


class PumpReadingSerializer(serializers.ModelSerializer):
    pump_number = serializers.CharField(source="nozzle.pump.pump_number", read_only=True)
    nozzle_number = serializers.CharField(source="nozzle.nozzle_number", read_only=True)
    fuel_type = serializers.CharField(source="nozzle.fuel_type.name", read_only=True)

    class Meta:
        model = PumpReading
        fields = ("id", "nozzle_id", "pump_number", "nozzle_number", "fuel_type", "reading_type", "meter_reading")


class SaleSerializer(serializers.ModelSerializer):
    pump_number = serializers.CharField(source="nozzle.pump.pump_number", read_only=True)
    nozzle_number = serializers.CharField(source="nozzle.nozzle_number", read_only=True)
    fuel_type = serializers.CharField(source="nozzle.fuel_type.name", read_only=True)
    created_by = UserBriefSerializer(read_only=True)

    class Meta:
        model = Sale
        fields = (
            "id", "shift_id", "nozzle_id", "pump_number", "nozzle_number", "fuel_type",
            "opening_reading", "closing_reading", "litres_dispensed", "price_per_litre", "total_amount",
            "payment_method", "created_by", "created_at",
        )


class DeliverySerializer(serializers.ModelSerializer):
    tank_number = serializers.SerializerMethodField()
    fuel_type = serializers.SerializerMethodField()
    created_by = UserBriefSerializer(read_only=True)
    exceeds_capacity = serializers.SerializerMethodField()

    class Meta:
        model = Delivery
        fields = (
            "id", "tank_id", "tank_number", "fuel_type", "challan_number", "litres_delivered",
            "delivery_date", "supplier_name", "notes", "created_by", "created_at", "exceeds_capacity",
        )

    def get_tank_number(self, obj):
        tank = obj.tank if obj.tank_id else None
        return tank.tank_number if tank else "N/A"

    def get_fuel_type(self, obj):
        tank = obj.tank if obj.tank_id else None
        return tank.fuel_type.name if tank else "N/A"

    def get_exceeds_capacity(self, obj):
        return getattr(obj, "exceeds_capacity", False)


class TankDipSerializer(serializers.ModelSerializer):
    tank_number = serializers.CharField(source="tank.tank_number", read_only=True)
    recorded_by = UserBriefSerializer(read_only=True)

    class Meta:
        model = TankDip
        fields = ("id", "tank_id", "tank_number", "dip_reading", "temperature", "recorded_date", "recorded_by", "notes")


class StockMovementSerializer(serializers.ModelSerializer):
    created_by = UserBriefSerializer(read_only=True)

    class Meta:
        model = StockMovement
        fields = ("id", "kind", "litres", "balance_after", "delivery_id", "sale_id", "note", "created_by", "created_at")


# ---------------------------
# Write side: shape and type checks only, business rules live in services
# ---------------------------
class MeterReadingInputSerializer(serializers.Serializer):
    nozzle_id = serializers.CharField()
    meter_reading = serializers.DecimalField(max_digits=14, decimal_places=2)


class StartShiftSerializer(serializers.Serializer):
    opening_cash = serializers.DecimalField(max_digits=12, decimal_places=2)
    opening_readings = MeterReadingInputSerializer(many=True, required=False)


class CloseShiftSerializer(serializers.Serializer):
    closing_cash = serializers.DecimalField(max_digits=12, decimal_places=2)
    closing_readings = MeterReadingInputSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ShiftQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=Shift.STATUS_CHOICES, required=False)


class RecordSaleSerializer(serializers.Serializer):
    nozzle_id = serializers.CharField()
    opening_reading = serializers.DecimalField(max_digits=14, decimal_places=2)
    closing_reading = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.CharField()


class SaleQuerySerializer(serializers.Serializer):
    shift_id = serializers.UUIDField(required=False)
    date = serializers.DateField(required=False)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_CHOICES, required=False)


class FuelTypeInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=64)
    code = serializers.CharField(max_length=16)
    price_per_litre = serializers.DecimalField(max_digits=10, decimal_places=2)
    is_active = serializers.BooleanField(required=False, default=True)


class NozzleInputSerializer(serializers.Serializer):
    nozzle_number = serializers.CharField(max_length=16)
    fuel_type_id = serializers.CharField()
    tank_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class PumpInputSerializer(serializers.Serializer):
    pump_number = serializers.CharField(max_length=16)
    name = serializers.CharField(max_length=128)
    nozzles = NozzleInputSerializer(many=True, required=False)


class TankInputSerializer(serializers.Serializer):
    tank_number = serializers.CharField(max_length=16)
    fuel_type_id = serializers.CharField()
    capacity_litres = serializers.DecimalField(max_digits=14, decimal_places=2)
    current_stock = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    reorder_level = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)


class DeliveryInputSerializer(serializers.Serializer):
    tank_id = serializers.CharField()
    challan_number = serializers.CharField(max_length=64)
    litres_delivered = serializers.DecimalField(max_digits=14, decimal_places=2)
    delivery_date = serializers.DateField()
    supplier_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class DeliveryQuerySerializer(serializers.Serializer):
    tank_id = serializers.UUIDField(required=False)
    date = serializers.DateField(required=False)


class TankDipInputSerializer(serializers.Serializer):
    tank_id = serializers.CharField()
    dip_reading = serializers.DecimalField(max_digits=14, decimal_places=2)
    recorded_date = serializers.DateTimeField(required=False)
    temperature = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class DailyReportQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class MonthlyReportQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False, min_value=1, max_value=9999)
    month = serializers.IntegerField(required=False, min_value=1, max_value=12)
