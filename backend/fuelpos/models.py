import uuid
import json
import hmac
import hashlib
from decimal import Decimal
from django.db import models
from django.db.models import F, Q
from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator, MaxValueValidator
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

# ---------------------------
# User
# ---------------------------
class User(AbstractUser):
    ROLE_ATTENDANT = "attendant"
    ROLE_SUPERVISOR = "supervisor"
    ROLE_ADMIN = "admin"
    ROLE_CHOICES = [
        (ROLE_ATTENDANT, "Attendant"),
        (ROLE_SUPERVISOR, "Supervisor"),
        (ROLE_ADMIN, "Admin"),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    full_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_ATTENDANT)

    @property
    def is_admin_role(self):
        return self.is_superuser or self.role == self.ROLE_ADMIN

    @property
    def is_elevated(self):
        """Supervisors and admins see and act on every attendant's records."""
        return self.is_superuser or self.role in (self.ROLE_SUPERVISOR, self.ROLE_ADMIN)

    def __str__(self):
        return self.full_name or self.username


# ---------------------------
# Lifecycle: active -> retired
# ---------------------------
class RetirableModel(models.Model):
    """
    Registry rows referenced by history are never deleted; they are retired
    and drop out of listings while old sales/deliveries keep resolving them.
    """
    is_active = models.BooleanField(default=True)
    retired_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    def retire(self):
        self.is_active = False
        self.retired_at = timezone.now()
        self.save(update_fields=["is_active", "retired_at"])


# ---------------------------
# Fuel catalog / Pump / Nozzle / Tank
# ---------------------------
class FuelType(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=64)
    code = models.CharField(max_length=16, unique=True)
    price_per_litre = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class Pump(RetirableModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pump_number = models.CharField(max_length=16)
    name = models.CharField(max_length=128)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["pump_number"]
        constraints = [
            models.UniqueConstraint(fields=["pump_number"], condition=Q(is_active=True), name="unique_active_pump_number"),
        ]

    def __str__(self):
        return f"Pump {self.pump_number}"


class Tank(RetirableModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tank_number = models.CharField(max_length=16)
    fuel_type = models.ForeignKey(FuelType, on_delete=models.PROTECT, related_name="tanks")
    capacity_litres = models.DecimalField(max_digits=14, decimal_places=2)
    current_stock = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    reorder_level = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["tank_number"]
        constraints = [
            models.UniqueConstraint(fields=["tank_number"], condition=Q(is_active=True), name="unique_active_tank_number"),
        ]

    @property
    def is_low_stock(self):
        return self.current_stock <= self.reorder_level

    def __str__(self):
        return f"Tank {self.tank_number}"


class Nozzle(RetirableModel):
    """
    A nozzle identity never changes once created: sales and meter readings
    point at it. Editing a pump retires nozzles and creates new ones.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pump = models.ForeignKey(Pump, on_delete=models.PROTECT, related_name="nozzles")
    nozzle_number = models.CharField(max_length=16)
    fuel_type = models.ForeignKey(FuelType, on_delete=models.PROTECT, related_name="nozzles")
    tank = models.ForeignKey(Tank, on_delete=models.PROTECT, null=True, blank=True, related_name="nozzles")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["pump__pump_number", "nozzle_number"]
        constraints = [
            models.UniqueConstraint(fields=["pump", "nozzle_number"], condition=Q(is_active=True), name="unique_active_nozzle_per_pump"),
        ]

    def __str__(self):
        return f"{self.pump} / nozzle {self.nozzle_number}"


# ---------------------------
# Shift / PumpReading / Sale
# ---------------------------
class Shift(models.Model):
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"
    STATUS_CHOICES = [(STATUS_OPEN, "open"), (STATUS_CLOSED, "closed")]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="shifts")
    shift_date = models.DateField()
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    opening_cash = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    closing_cash = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_OPEN)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-shift_date", "-start_time"]
        constraints = [
            # a second concurrent start_shift loses at the database, not in application code
            models.UniqueConstraint(fields=["user"], condition=Q(status="open"), name="one_open_shift_per_user"),
        ]
        indexes = [
            models.Index(fields=["user", "shift_date"], name="shift_user_date_idx"),
            models.Index(fields=["status"], name="shift_status_idx"),
        ]

    @property
    def is_open(self):
        return self.status == self.STATUS_OPEN


class PumpReading(models.Model):
    OPENING = "opening"
    CLOSING = "closing"
    TYPE_CHOICES = [(OPENING, "opening"), (CLOSING, "closing")]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.PROTECT, related_name="readings")
    nozzle = models.ForeignKey(Nozzle, on_delete=models.PROTECT, related_name="readings")
    reading_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    meter_reading = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    recorded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(fields=["shift", "nozzle", "reading_type"], name="unique_reading_per_shift_nozzle"),
        ]


class Sale(models.Model):
    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_CREDIT = "credit"
    PAYMENT_CHOICES = [(PAYMENT_CASH, "cash"), (PAYMENT_CARD, "card"), (PAYMENT_CREDIT, "credit")]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.PROTECT, related_name="sales")
    nozzle = models.ForeignKey(Nozzle, on_delete=models.PROTECT, related_name="sales")
    opening_reading = models.DecimalField(max_digits=14, decimal_places=2)
    closing_reading = models.DecimalField(max_digits=14, decimal_places=2)
    litres_dispensed = models.DecimalField(max_digits=14, decimal_places=2)
    # price frozen at the moment of sale
    price_per_litre = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=18, decimal_places=4)
    payment_method = models.CharField(max_length=16, choices=PAYMENT_CHOICES)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="sales")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(closing_reading__gt=F("opening_reading")), name="sale_closing_gt_opening"),
        ]
        indexes = [
            models.Index(fields=["created_at"], name="sale_created_at_idx"),
            models.Index(fields=["payment_method"], name="sale_payment_method_idx"),
        ]


# ---------------------------
# Delivery / TankDip / StockMovement
# ---------------------------
class Delivery(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tank = models.ForeignKey(Tank, on_delete=models.PROTECT, related_name="deliveries")
    challan_number = models.CharField(max_length=64)
    litres_delivered = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    delivery_date = models.DateField()
    supplier_name = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="deliveries")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-delivery_date", "-created_at"]


class TankDip(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tank = models.ForeignKey(Tank, on_delete=models.PROTECT, related_name="dips")
    dip_reading = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    temperature = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(-50), MaxValueValidator(100)],
    )
    recorded_date = models.DateTimeField(default=timezone.now)
    recorded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="+")
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-recorded_date"]


class StockMovement(models.Model):
    """
    Signed ledger entry against a tank. Tank.current_stock is always the sum
    of its movements; reconciliation replays this table to repair drift.
    """
    KIND_OPENING = "opening"
    KIND_DELIVERY = "delivery"
    KIND_SALE = "sale"
    KIND_ADJUSTMENT = "adjustment"
    KIND_CHOICES = [
        (KIND_OPENING, "opening"),
        (KIND_DELIVERY, "delivery"),
        (KIND_SALE, "sale"),
        (KIND_ADJUSTMENT, "adjustment"),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tank = models.ForeignKey(Tank, on_delete=models.PROTECT, related_name="movements")
    kind = models.CharField(max_length=16, choices=KIND_CHOICES)
    litres = models.DecimalField(max_digits=14, decimal_places=2)
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)
    delivery = models.ForeignKey(Delivery, on_delete=models.PROTECT, null=True, blank=True, related_name="movements")
    sale = models.ForeignKey(Sale, on_delete=models.PROTECT, null=True, blank=True, related_name="movements")
    note = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]


# ---------------------------
# Audit
# ---------------------------
class AuditLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=128)
    target_type = models.CharField(max_length=64, blank=True, null=True)
    target_id = models.CharField(max_length=128, blank=True, null=True)
    payload = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    signature = models.CharField(max_length=512, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        # sign payload using SECRET_KEY HMAC for basic tamper evidence
        secret = settings.SECRET_KEY.encode("utf-8")
        msg = (json.dumps(self.payload, sort_keys=True, default=str)).encode("utf-8")
        self.signature = hmac.new(secret, msg, hashlib.sha256).hexdigest()
        super().save(*args, **kwargs)

    def verify(self):
        secret = settings.SECRET_KEY.encode("utf-8")
        msg = (json.dumps(self.payload, sort_keys=True, default=str)).encode("utf-8")
        return hmac.compare_digest(self.signature or "", hmac.new(secret, msg, hashlib.sha256).hexdigest())
