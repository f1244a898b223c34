import uuid
from decimal import Decimal

import pytest
from django.utils import timezone

from fuelpos.models import Shift, Tank
from fuelpos.services import sales, shifts


def _dec(value):
    return Decimal(str(value))


@pytest.mark.django_db
class TestAuth:
    def test_anonymous_is_rejected(self, client_for):
        assert client_for().get("/api/shifts/").status_code == 401

    def test_me(self, client_for, supervisor):
        response = client_for(supervisor).get("/api/me/")
        assert response.status_code == 200
        assert response.json()["role"] == "supervisor"

    def test_token_obtain(self, client_for, attendant):
        response = client_for().post("/api/token/", {"username": "ali", "password": "pass-12345"}, format="json")
        assert response.status_code == 200
        assert "access" in response.json()


@pytest.mark.django_db
class TestShiftEndpoints:
    def test_start_current_close(self, client_for, attendant, nozzle):
        client = client_for(attendant)
        response = client.post("/api/shifts/start/", {
            "opening_cash": "5000",
            "opening_readings": [{"nozzle_id": str(nozzle.id), "meter_reading": "1000"}],
        }, format="json")
        assert response.status_code == 201
        shift_id = response.json()["shift"]["id"]

        assert client.post("/api/shifts/start/", {"opening_cash": "1"}, format="json").status_code == 409
        assert client.get("/api/shifts/current/").json()["id"] == shift_id

        detail = client.get(f"/api/shifts/{shift_id}/").json()
        assert len(detail["readings"]) == 1

        response = client.put(f"/api/shifts/{shift_id}/close/", {
            "closing_cash": "8500",
            "closing_readings": [{"nozzle_id": str(nozzle.id), "meter_reading": "1050"}],
        }, format="json")
        assert response.status_code == 200
        assert response.json()["shift"]["status"] == "closed"
        assert client.get("/api/shifts/current/").status_code == 404
        assert client.put(f"/api/shifts/{shift_id}/close/", {"closing_cash": "1"}, format="json").status_code == 409

    def test_bad_decimal_is_a_400(self, client_for, attendant):
        response = client_for(attendant).post("/api/shifts/start/", {"opening_cash": "10.123"}, format="json")
        assert response.status_code == 400
        assert "opening_cash" in response.json()

    def test_close_someone_elses_shift(self, client_for, attendant, other_attendant):
        shift = shifts.start_shift(attendant, 0)
        url = f"/api/shifts/{shift.id}/close/"
        assert client_for(other_attendant).put(url, {"closing_cash": "0"}, format="json").status_code == 403
        assert client_for(other_attendant).put(
            f"/api/shifts/{uuid.uuid4()}/close/", {"closing_cash": "0"}, format="json"
        ).status_code == 404

    def test_list_is_scoped(self, client_for, attendant, other_attendant, supervisor):
        shifts.start_shift(attendant, 0)
        shifts.start_shift(other_attendant, 0)
        assert len(client_for(attendant).get("/api/shifts/").json()) == 1
        assert len(client_for(supervisor).get("/api/shifts/?status=open").json()) == 2
        assert client_for(supervisor).get("/api/shifts/?status=paused").status_code == 400


@pytest.mark.django_db
class TestSaleEndpoints:
    def test_record_sale(self, client_for, attendant, nozzle):
        client = client_for(attendant)
        shifts.start_shift(attendant, 5000)
        response = client.post("/api/sales/", {
            "nozzle_id": str(nozzle.id),
            "opening_reading": "1000",
            "closing_reading": "1050",
            "payment_method": "cash",
        }, format="json")
        assert response.status_code == 201
        sale = response.json()["sale"]
        assert _dec(sale["litres_dispensed"]) == Decimal("50")
        assert _dec(sale["total_amount"]) == Decimal("14025")
        assert sale["fuel_type"] == "Petrol"

    def test_sale_without_shift_is_a_409(self, client_for, attendant, nozzle):
        response = client_for(attendant).post("/api/sales/", {
            "nozzle_id": str(nozzle.id),
            "opening_reading": "1000",
            "closing_reading": "1050",
            "payment_method": "cash",
        }, format="json")
        assert response.status_code == 409
        assert response.json()["detail"] == "No open shift found. Please start a shift first."

    def test_reversed_readings_are_a_400(self, client_for, attendant, nozzle):
        shifts.start_shift(attendant, 0)
        response = client_for(attendant).post("/api/sales/", {
            "nozzle_id": str(nozzle.id),
            "opening_reading": "1050",
            "closing_reading": "1000",
            "payment_method": "cash",
        }, format="json")
        assert response.status_code == 400
        assert "closing_reading" in response.json()

    def test_shift_summary_access(self, client_for, attendant, other_attendant, supervisor, nozzle):
        shift = shifts.start_shift(attendant, 0)
        sales.record_sale(attendant, nozzle.id, "1", "3", "card")

        url = f"/api/sales/shift-summary/{shift.id}/"
        assert client_for(other_attendant).get(url).status_code == 403
        assert client_for(other_attendant).get(f"/api/sales/shift-summary/{uuid.uuid4()}/").status_code == 404

        body = client_for(supervisor).get(url).json()
        assert body["summary"]["total_sales"] == 1
        assert _dec(body["summary"]["by_payment_method"]["card"]["litres"]) == Decimal("2")

    def test_list_sales_ignores_other_users_filters(self, client_for, attendant, other_attendant, nozzle):
        theirs = shifts.start_shift(other_attendant, 0)
        sales.record_sale(other_attendant, nozzle.id, "1", "3", "cash")
        response = client_for(attendant).get(f"/api/sales/?shift_id={theirs.id}")
        assert response.status_code == 200
        assert response.json() == []
        assert client_for(attendant).get("/api/sales/?shift_id=nope").status_code == 400


@pytest.mark.django_db
class TestRegistryEndpoints:
    def test_attendant_cannot_write_tanks(self, client_for, attendant, petrol):
        response = client_for(attendant).post("/api/tanks/", {
            "tank_number": "T7", "fuel_type_id": str(petrol.id), "capacity_litres": "1000",
        }, format="json")
        assert response.status_code == 403

    def test_admin_tank_lifecycle(self, client_for, admin_user, attendant, petrol):
        admin = client_for(admin_user)
        response = admin.post("/api/tanks/", {
            "tank_number": "T7",
            "fuel_type_id": str(petrol.id),
            "capacity_litres": "10000",
            "current_stock": "6500",
            "reorder_level": "1500",
        }, format="json")
        assert response.status_code == 201
        tank_id = response.json()["tank"]["id"]

        assert admin.post("/api/tanks/", {
            "tank_number": "T7", "fuel_type_id": str(petrol.id), "capacity_litres": "1",
        }, format="json").status_code == 409

        response = client_for(attendant).post("/api/tanks/delivery/", {
            "tank_id": tank_id,
            "challan_number": "CH-77",
            "litres_delivered": "500",
            "delivery_date": "2024-03-01",
        }, format="json")
        assert response.status_code == 201
        assert Tank.objects.get(pk=tank_id).current_stock == Decimal("7000.00")

        movements = client_for(attendant).get(f"/api/tanks/{tank_id}/movements/").json()
        assert sorted(m["kind"] for m in movements) == ["delivery", "opening"]

        assert admin.delete(f"/api/tanks/{tank_id}/").status_code == 204
        assert admin.get("/api/tanks/").json() == []
        deliveries = client_for(attendant).get("/api/tanks/deliveries/").json()
        assert deliveries[0]["tank_number"] == "T7"

    def test_low_stock(self, client_for, attendant, tank):
        assert client_for(attendant).get("/api/tanks/low-stock/").json() == []
        Tank.objects.filter(pk=tank.pk).update(current_stock=Decimal("1500"))
        body = client_for(attendant).get("/api/tanks/low-stock/").json()
        assert [t["tank_number"] for t in body] == ["T1"]
        assert body[0]["is_low_stock"] is True

    def test_dips(self, client_for, attendant, tank):
        client = client_for(attendant)
        response = client.post("/api/tanks/dips/", {
            "tank_id": str(tank.id), "dip_reading": "6400", "temperature": "30",
        }, format="json")
        assert response.status_code == 201
        assert len(client.get(f"/api/tanks/dips/?tank_id={tank.id}").json()) == 1

    def test_reconciliation_needs_elevated_role(self, client_for, attendant, supervisor, tank):
        assert client_for(attendant).get("/api/tanks/reconciliation/").status_code == 403
        body = client_for(supervisor).get("/api/tanks/reconciliation/").json()
        assert body["summary"]["total_checked"] == 1

    def test_pumps(self, client_for, admin_user, attendant, petrol, pump):
        body = client_for(attendant).get("/api/pumps/").json()
        assert body[0]["pump_number"] == "P1"
        assert len(body[0]["nozzles"]) == 2

        assert client_for(attendant).delete(f"/api/pumps/{pump.id}/").status_code == 403
        response = client_for(admin_user).post("/api/pumps/", {
            "pump_number": "P1", "name": "Dup",
        }, format="json")
        assert response.status_code == 409

    def test_fuel_types(self, client_for, admin_user, attendant, petrol):
        assert [f["code"] for f in client_for(attendant).get("/api/fuel-types/").json()] == ["PET"]
        response = client_for(admin_user).put(f"/api/fuel-types/{petrol.id}/", {
            "name": "Petrol", "code": "PET", "price_per_litre": "285.00",
        }, format="json")
        assert response.status_code == 200
        assert _dec(response.json()["price_per_litre"]) == Decimal("285")


@pytest.mark.django_db
class TestReportEndpoints:
    def test_daily_report_is_scoped(self, client_for, attendant, other_attendant, supervisor, nozzle):
        shifts.start_shift(attendant, 0)
        shifts.start_shift(other_attendant, 0)
        sales.record_sale(attendant, nozzle.id, "1", "2", "cash")
        sales.record_sale(other_attendant, nozzle.id, "2", "4", "cash")

        mine = client_for(attendant).get("/api/reports/daily-sales/").json()
        assert mine["summary"]["total_shifts"] == 1
        assert mine["summary"]["total_sales"] == 1

        everyone = client_for(supervisor).get("/api/reports/daily-sales/").json()
        assert everyone["summary"]["total_shifts"] == 2
        assert _dec(everyone["summary"]["total_litres"]) == Decimal("3")

    def test_monthly_report_has_every_day(self, client_for, attendant, nozzle):
        shifts.start_shift(attendant, 0)
        sales.record_sale(attendant, nozzle.id, "1", "2", "credit")
        today = timezone.localdate()

        body = client_for(attendant).get(f"/api/reports/monthly-sales/?year={today.year}&month={today.month}").json()
        assert body["month"] == f"{today.year}-{today.month:02d}"
        bucket = body["daily_sales"][today.isoformat()]
        assert bucket["count"] == 1
        assert _dec(bucket["credit"]) == Decimal("280.5")

        feb = client_for(attendant).get("/api/reports/monthly-sales/?year=2024&month=2").json()
        assert len(feb["daily_sales"]) == 29
        assert client_for(attendant).get("/api/reports/monthly-sales/?month=13").status_code == 400

    def test_shift_report_and_pdf_exports(self, client_for, attendant, other_attendant, nozzle):
        shift = shifts.start_shift(attendant, 100, [{"nozzle_id": nozzle.id, "meter_reading": "1"}])
        sales.record_sale(attendant, nozzle.id, "1", "2", "cash")
        client = client_for(attendant)

        report = client.get(f"/api/reports/shift/{shift.id}/").json()
        assert report["readings"][0]["pump"] == "P1"
        assert report["totals"]["total_sales"] == 1

        for url in (
            f"/api/reports/export-shift-pdf/{shift.id}/",
            "/api/reports/export-daily-sales-pdf/",
            "/api/reports/export-monthly-sales-pdf/",
        ):
            response = client.get(url)
            assert response.status_code == 200
            assert response["Content-Type"] == "application/pdf"
            assert response.content.startswith(b"%PDF")

        assert client_for(other_attendant).get(f"/api/reports/export-shift-pdf/{shift.id}/").status_code == 403
        assert Shift.objects.count() == 1
