import uuid
from decimal import Decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions without explicitly assigning them.", verbose_name="superuser status")),
                ("username", models.CharField(error_messages={"unique": "A user with that username already exists."}, help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.", max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into this admin site.", verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.", verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("phone", models.CharField(blank=True, max_length=32, null=True)),
                ("full_name", models.CharField(blank=True, max_length=255)),
                ("role", models.CharField(choices=[("attendant", "Attendant"), ("supervisor", "Supervisor"), ("admin", "Admin")], default="attendant", max_length=16)),
                ("groups", models.ManyToManyField(blank=True, help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.", related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(blank=True, help_text="Specific permissions for this user.", related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions")),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="FuelType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=64)),
                ("code", models.CharField(max_length=16, unique=True)),
                ("price_per_litre", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Pump",
            fields=[
                ("is_active", models.BooleanField(default=True)),
                ("retired_at", models.DateTimeField(blank=True, null=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("pump_number", models.CharField(max_length=16)),
                ("name", models.CharField(max_length=128)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["pump_number"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("pump_number",), name="unique_active_pump_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Tank",
            fields=[
                ("is_active", models.BooleanField(default=True)),
                ("retired_at", models.DateTimeField(blank=True, null=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tank_number", models.CharField(max_length=16)),
                ("capacity_litres", models.DecimalField(decimal_places=2, max_digits=14)),
                ("current_stock", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("reorder_level", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("fuel_type", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="tanks", to="fuelpos.fueltype")),
            ],
            options={
                "ordering": ["tank_number"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("tank_number",), name="unique_active_tank_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Nozzle",
            fields=[
                ("is_active", models.BooleanField(default=True)),
                ("retired_at", models.DateTimeField(blank=True, null=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("nozzle_number", models.CharField(max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("fuel_type", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="nozzles", to="fuelpos.fueltype")),
                ("pump", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="nozzles", to="fuelpos.pump")),
                ("tank", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="nozzles", to="fuelpos.tank")),
            ],
            options={
                "ordering": ["pump__pump_number", "nozzle_number"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("pump", "nozzle_number"), name="unique_active_nozzle_per_pump"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Shift",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("shift_date", models.DateField()),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                ("opening_cash", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("closing_cash", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("status", models.CharField(choices=[("open", "open"), ("closed", "closed")], default="open", max_length=16)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="shifts", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-shift_date", "-start_time"],
                "indexes": [
                    models.Index(fields=["user", "shift_date"], name="shift_user_date_idx"),
                    models.Index(fields=["status"], name="shift_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "open")), fields=("user",), name="one_open_shift_per_user"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PumpReading",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reading_type", models.CharField(choices=[("opening", "opening"), ("closing", "closing")], max_length=16)),
                ("meter_reading", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("nozzle", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="readings", to="fuelpos.nozzle")),
                ("recorded_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("shift", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="readings", to="fuelpos.shift")),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("shift", "nozzle", "reading_type"), name="unique_reading_per_shift_nozzle"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("opening_reading", models.DecimalField(decimal_places=2, max_digits=14)),
                ("closing_reading", models.DecimalField(decimal_places=2, max_digits=14)),
                ("litres_dispensed", models.DecimalField(decimal_places=2, max_digits=14)),
                ("price_per_litre", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=4, max_digits=18)),
                ("payment_method", models.CharField(choices=[("cash", "cash"), ("card", "card"), ("credit", "credit")], max_length=16)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="sales", to=settings.AUTH_USER_MODEL)),
                ("nozzle", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sales", to="fuelpos.nozzle")),
                ("shift", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sales", to="fuelpos.shift")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="sale_created_at_idx"),
                    models.Index(fields=["payment_method"], name="sale_payment_method_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("closing_reading__gt", models.F("opening_reading"))), name="sale_closing_gt_opening"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Delivery",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("challan_number", models.CharField(max_length=64)),
                ("litres_delivered", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ("delivery_date", models.DateField()),
                ("supplier_name", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="deliveries", to=settings.AUTH_USER_MODEL)),
                ("tank", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="deliveries", to="fuelpos.tank")),
            ],
            options={
                "ordering": ["-delivery_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TankDip",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("dip_reading", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ("temperature", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(-50), django.core.validators.MaxValueValidator(100)])),
                ("recorded_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("recorded_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("tank", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="dips", to="fuelpos.tank")),
            ],
            options={
                "ordering": ["-recorded_date"],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("opening", "opening"), ("delivery", "delivery"), ("sale", "sale"), ("adjustment", "adjustment")], max_length=16)),
                ("litres", models.DecimalField(decimal_places=2, max_digits=14)),
                ("balance_after", models.DecimalField(decimal_places=2, max_digits=14)),
                ("note", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("delivery", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="fuelpos.delivery")),
                ("sale", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="fuelpos.sale")),
                ("tank", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="fuelpos.tank")),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("action", models.CharField(max_length=128)),
                ("target_type", models.CharField(blank=True, max_length=64, null=True)),
                ("target_id", models.CharField(blank=True, max_length=128, null=True)),
                ("payload", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("signature", models.CharField(blank=True, max_length=512, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("actor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
