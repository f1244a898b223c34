# fuelpos/api/views.py
from django.http import HttpResponse
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from fuelpos import pdf
from fuelpos.permissions import IsAdminOrReadOnly, IsSupervisorOrAdmin
from fuelpos.services import equipment, inventory, reconciliation, reports, sales, shifts
from .serializers import (
    CloseShiftSerializer, DailyReportQuerySerializer, DeliveryInputSerializer, DeliveryQuerySerializer,
    DeliverySerializer, FuelTypeInputSerializer, FuelTypeSerializer, MonthlyReportQuerySerializer,
    PumpInputSerializer, PumpReadingSerializer, PumpSerializer, RecordSaleSerializer, SaleQuerySerializer,
    SaleSerializer, ShiftQuerySerializer, ShiftSerializer, StartShiftSerializer, StockMovementSerializer,
    TankDipInputSerializer, TankDipSerializer, TankInputSerializer, TankSerializer, UserSerializer,
)


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me(request):
    """Profile of the logged in user, including the role the UI switches on."""
    return Response(UserSerializer(request.user).data)


class ShiftViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def list(self, request):
        query = _validated(ShiftQuerySerializer, request.query_params)
        qs = shifts.list_shifts(request.user, date=query.get("date"), status=query.get("status"))
        return Response(ShiftSerializer(qs, many=True).data)

    def retrieve(self, request, pk=None):
        detail = shifts.get_shift_detail(pk, request.user)
        data = ShiftSerializer(detail["shift"]).data
        data["readings"] = PumpReadingSerializer(detail["readings"], many=True).data
        return Response(data)

    @action(detail=False, methods=["post"])
    def start(self, request):
        data = _validated(StartShiftSerializer, request.data)
        shift = shifts.start_shift(request.user, data["opening_cash"], data.get("opening_readings", []))
        return Response(
            {"message": "Shift started successfully", "shift": ShiftSerializer(shift).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["put", "post"])
    def close(self, request, pk=None):
        data = _validated(CloseShiftSerializer, request.data)
        shift = shifts.close_shift(
            pk, request.user, data["closing_cash"], data.get("closing_readings", []), notes=data.get("notes", "")
        )
        return Response({"message": "Shift closed successfully", "shift": ShiftSerializer(shift).data})

    @action(detail=False, methods=["get"])
    def current(self, request):
        return Response(ShiftSerializer(shifts.get_current_shift(request.user)).data)


class SaleViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def list(self, request):
        query = _validated(SaleQuerySerializer, request.query_params)
        qs = sales.list_sales(
            request.user,
            shift_id=query.get("shift_id"),
            date=query.get("date"),
            payment_method=query.get("payment_method"),
        )
        return Response(SaleSerializer(qs, many=True).data)

    def create(self, request):
        data = _validated(RecordSaleSerializer, request.data)
        sale = sales.record_sale(
            request.user, data["nozzle_id"], data["opening_reading"], data["closing_reading"], data["payment_method"]
        )
        return Response(
            {"message": "Sale recorded successfully", "sale": SaleSerializer(sale).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path=r"shift-summary/(?P<shift_id>[^/.]+)")
    def shift_summary(self, request, shift_id=None):
        result = sales.get_shift_summary(shift_id, request.user)
        return Response({
            "shift": ShiftSerializer(result["shift"]).data,
            "sales": SaleSerializer(result["sales"], many=True).data,
            "summary": result["summary"],
        })


class FuelTypeViewSet(viewsets.ViewSet):
    permission_classes = [IsAdminOrReadOnly]

    def list(self, request):
        include_inactive = request.query_params.get("include_inactive") in ("1", "true")
        return Response(FuelTypeSerializer(equipment.list_fuel_types(include_inactive), many=True).data)

    def create(self, request):
        data = _validated(FuelTypeInputSerializer, request.data)
        fuel = equipment.create_fuel_type(request.user, **data)
        return Response(FuelTypeSerializer(fuel).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        data = _validated(FuelTypeInputSerializer, request.data)
        fuel = equipment.update_fuel_type(pk, request.user, **data)
        return Response(FuelTypeSerializer(fuel).data)


class PumpViewSet(viewsets.ViewSet):
    permission_classes = [IsAdminOrReadOnly]

    def list(self, request):
        return Response(PumpSerializer(equipment.list_pumps(), many=True).data)

    def retrieve(self, request, pk=None):
        return Response(PumpSerializer(equipment.get_pump(pk)).data)

    def create(self, request):
        data = _validated(PumpInputSerializer, request.data)
        pump = equipment.create_pump(request.user, data["pump_number"], data["name"], data.get("nozzles", []))
        return Response(
            {"message": "Pump created successfully", "pump": PumpSerializer(pump).data},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None):
        data = _validated(PumpInputSerializer, request.data)
        # nozzles omitted: keep the current set
        pump = equipment.update_pump(pk, request.user, data["pump_number"], data["name"], data.get("nozzles"))
        return Response({"message": "Pump updated successfully", "pump": PumpSerializer(pump).data})

    def destroy(self, request, pk=None):
        equipment.retire_pump(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class TankViewSet(viewsets.ViewSet):
    """
    Registry writes are admin-only; deliveries and dips are recorded by any
    authenticated user; reconciliation is for supervisors and admins.
    """

    def get_permissions(self):
        if self.action in ("delivery", "deliveries", "dips", "low_stock", "movements"):
            return [IsAuthenticated()]
        if self.action == "reconciliation":
            return [IsSupervisorOrAdmin()]
        return [IsAdminOrReadOnly()]

    def list(self, request):
        return Response(TankSerializer(inventory.list_tanks(), many=True).data)

    def retrieve(self, request, pk=None):
        return Response(TankSerializer(inventory.get_tank(pk)).data)

    def create(self, request):
        data = _validated(TankInputSerializer, request.data)
        tank = inventory.create_tank(request.user, **data)
        return Response(
            {"message": "Tank created successfully", "tank": TankSerializer(tank).data},
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None):
        data = _validated(TankInputSerializer, request.data)
        tank = inventory.update_tank(pk, request.user, **data)
        return Response({"message": "Tank updated successfully", "tank": TankSerializer(tank).data})

    def destroy(self, request, pk=None):
        inventory.retire_tank(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request):
        return Response(TankSerializer(inventory.low_stock_tanks(), many=True).data)

    @action(detail=False, methods=["post"])
    def delivery(self, request):
        data = _validated(DeliveryInputSerializer, request.data)
        delivery = inventory.record_delivery(request.user, **data)
        return Response(
            {"message": "Delivery recorded successfully", "delivery": DeliverySerializer(delivery).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"])
    def deliveries(self, request):
        query = _validated(DeliveryQuerySerializer, request.query_params)
        qs = inventory.list_deliveries(tank_id=query.get("tank_id"), date=query.get("date"))
        return Response(DeliverySerializer(qs, many=True).data)

    @action(detail=True, methods=["get"])
    def movements(self, request, pk=None):
        return Response(StockMovementSerializer(inventory.list_movements(pk), many=True).data)

    @action(detail=False, methods=["get", "post"])
    def dips(self, request):
        if request.method == "POST":
            data = _validated(TankDipInputSerializer, request.data)
            dip = inventory.record_tank_dip(request.user, **data)
            return Response(TankDipSerializer(dip).data, status=status.HTTP_201_CREATED)
        query = _validated(DeliveryQuerySerializer, request.query_params)
        return Response(TankDipSerializer(inventory.list_tank_dips(query.get("tank_id")), many=True).data)

    @action(detail=False, methods=["get"])
    def reconciliation(self, request):
        return Response(reconciliation.run_reconciliation())


def _pdf_response(content, filename):
    response = HttpResponse(content, content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


class ReportViewSet(viewsets.ViewSet):
    """Read-only rollups; attendants only ever see their own shifts."""
    permission_classes = [IsAuthenticated]

    def _daily(self, request):
        query = _validated(DailyReportQuerySerializer, request.query_params)
        return reports.daily_sales_report(request.user, query.get("date"))

    def _monthly(self, request):
        query = _validated(MonthlyReportQuerySerializer, request.query_params)
        return reports.monthly_sales_report(request.user, query.get("year"), query.get("month"))

    @action(detail=False, methods=["get"], url_path="daily-sales")
    def daily_sales(self, request):
        report = self._daily(request)
        return Response({
            "date": report["date"],
            "shifts": ShiftSerializer(report["shifts"], many=True).data,
            "sales": SaleSerializer(report["sales"], many=True).data,
            "summary": report["summary"],
        })

    @action(detail=False, methods=["get"], url_path="monthly-sales")
    def monthly_sales(self, request):
        return Response(self._monthly(request))

    @action(detail=False, methods=["get"], url_path=r"shift/(?P<shift_id>[^/.]+)")
    def shift(self, request, shift_id=None):
        report = reports.shift_report(shift_id, request.user)
        return Response({
            "shift": ShiftSerializer(report["shift"]).data,
            "readings": report["readings"],
            "sales": SaleSerializer(report["sales"], many=True).data,
            "totals": report["totals"],
            "generated_at": report["generated_at"],
        })

    @action(detail=False, methods=["get"], url_path=r"export-shift-pdf/(?P<shift_id>[^/.]+)")
    def export_shift_pdf(self, request, shift_id=None):
        report = reports.shift_report(shift_id, request.user)
        return _pdf_response(pdf.render_shift_report(report), f"shift-report-{report['shift'].id}.pdf")

    @action(detail=False, methods=["get"], url_path="export-daily-sales-pdf")
    def export_daily_sales_pdf(self, request):
        report = self._daily(request)
        return _pdf_response(pdf.render_daily_sales_report(report), f"daily-sales-{report['date'].isoformat()}.pdf")

    @action(detail=False, methods=["get"], url_path="export-monthly-sales-pdf")
    def export_monthly_sales_pdf(self, request):
        report = self._monthly(request)
        return _pdf_response(pdf.render_monthly_sales_report(report), f"monthly-sales-{report['month']}.pdf")
