# WORKFLOW: End-to-end test suite for the parcel upload API.
# Used by: CI/CD pipelines, development testing, quality assurance
# Test scenarios:
# 1. Health endpoints
# 2. ERP XML, spreadsheet XML and XLSX uploads returning camelCase records
# 3. Content type, size and empty-file rejections
# 4. Format errors mapped to 422
# 5. Temporary upload files removed after every request
#
# Testing flow: Fresh in-memory database + temp upload dir -> POST upload -> Validate response -> Assert tables

import io

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.main import app
from core.config import XLSX_CONTENT_TYPE, settings
from db import models
from db.models import Base
from db.session import get_db

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

UPLOAD_URL = f"{settings.api_v1_prefix}/parcels/upload"

ERP_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<data>
  <record model="stock.picking">
    <field name="origin">PO-001</field>
    <field name="partner_id"><field name="name">ACME Supplies</field></field>
    <field name="move_lines">
      <record>
        <field name="parcel_from">1</field>
        <field name="parcel_to">1</field>
        <field name="total_weight">12.5</field>
        <record>
          <field name="product_id">
            <field name="product_code">ABC</field>
            <field name="product_name">Widget</field>
          </field>
          <field name="product_qty">10</field>
          <field name="product_uom"><field name="name">PCE</field></field>
        </record>
      </record>
    </field>
  </record>
</data>"""


def spreadsheet_xml() -> bytes:
    def row(*values):
        cells = "".join(
            f"<Cell><Data>{value}</Data></Cell>" if value is not None else "<Cell/>"
            for value in values
        )
        return f"<Row>{cells}</Row>"

    rows = [
        row("Incoming shipment"),
        row(),
        row("Order:", "24/MBE/LB107/00010:"),
        row(),
        row("#", "1", "1", "1", "4.2"),
        row("Line", "Qty", "Code"),
        row("1", None, "ABC", "Widget", "3.000", "PCE"),
        row("2", None, "DEF", "Bolt", "5", "BOX"),
    ]
    return (
        '<?xml version="1.0"?><Workbook xmlns="urn:schemas-microsoft-com:office:spreadsheet">'
        f'<Worksheet><Table>{"".join(rows)}</Table></Worksheet></Workbook>'
    ).encode("utf-8")


def packing_list_xlsx() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for values in [
        ["PACKING LIST"],
        ["PPL/02225-11"],
        ["Our Ref.:", None, "25/CH/KE202/FO01861"],
        ["Shipper:", "Dispatch:"],
        ["OCG_KE2_SKI", "OCG_KE1_MOM"],
        ["Parcel No: 1 to 2", None, None, "Total weight 12.00 kg Total volume 36.00 dm3"],
        ["Line", "Code", "Description", "Total Qty."],
        ["1", "PHDWPOSHW30", "POLISH wood", "7.000 PCE"],
        ["Parcel No: 2 to 2"],
        ["Line", "Code", "Description", "Total Qty."],
        ["1", "PHYGDETEG3-", "GLASS CLEANER", "8.000 PCE"],
    ]:
        sheet.append(values)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


client: TestClient


class TestUploadWorkflow:
    """Upload endpoint behaviour against an in-memory database."""

    @pytest.fixture(autouse=True)
    def upload_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
        self.upload_path = tmp_path
        yield tmp_path

    def setup_method(self):
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)

        app.dependency_overrides[get_db] = override_get_db
        global client
        client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def upload(self, filename, content, content_type):
        return client.post(UPLOAD_URL, files={"file": (filename, content, content_type)})

    def test_health_endpoints(self):
        response = client.get("/healthz", headers={"X-Request-ID": "req-42"})
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Request-ID"] == "req-42"

        response = client.get(f"{settings.api_v1_prefix}/healthz")
        assert response.status_code == 200
        assert "version" in response.json()

    def test_readiness_checks_storage(self, monkeypatch):
        from db import session

        monkeypatch.setattr(session, "_engine", engine)

        response = client.get(f"{settings.api_v1_prefix}/readyz")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"] == {"database": True, "schema": True, "upload_dir": True}

        Base.metadata.drop_all(bind=engine)
        data = client.get(f"{settings.api_v1_prefix}/readyz").json()
        assert data["status"] == "not_ready"
        assert data["checks"]["schema"] is False

    def test_upload_erp_xml(self):
        response = self.upload("export.xml", ERP_XML, "application/xml")

        assert response.status_code == 200
        data = response.json()
        (record,) = data["parsedData"]
        assert record["parcel"] == {
            "purchaseOrderNumber": "PO-001",
            "parcelFrom": "1",
            "parcelTo": "1",
            "packingListNumber": None,
            "totalNumberOfParcels": 1,
            "itemType": "Regular",
        }
        assert record["parcelItems"] == [{
            "parcelNo": "1 to 1",
            "productQuantity": "10 PCE",
            "batchNumber": None,
            "expiryDate": None,
            "weight": "12.5",
            "volume": None,
            "product": {"productCode": "ABC", "productDescription": "Widget"},
        }]
        assert len(data["storedParcels"]) == 1

        db = TestingSessionLocal()
        try:
            stored = db.get(models.Parcel, data["storedParcels"][0]["parcelId"])
            assert stored.purchase_order_number == "PO-001"
            assert len(stored.items) == 1
        finally:
            db.close()

    def test_upload_spreadsheet_xml(self):
        response = self.upload("export.xml", spreadsheet_xml(), "text/xml")

        assert response.status_code == 200
        (record,) = response.json()["parsedData"]
        assert record["parcel"]["purchaseOrderNumber"] == "24/MBE/LB107/00010"
        assert [item["productQuantity"] for item in record["parcelItems"]] == ["3 PCE", "5 BOX"]
        assert record["parcelItems"][0]["weight"] == "4.2"

    def test_upload_xlsx(self):
        response = self.upload("packing.xlsx", packing_list_xlsx(), XLSX_CONTENT_TYPE)

        assert response.status_code == 200
        data = response.json()
        assert [r["parcel"]["totalNumberOfParcels"] for r in data["parsedData"]] == [2, 2]
        assert [r["parcelItems"][0]["productQuantity"] for r in data["parsedData"]] == ["7 PCE", "8 PCE"]
        assert len(data["storedParcels"]) == 2

    def test_upload_removes_temporary_file(self):
        self.upload("export.xml", ERP_XML, "application/xml")
        self.upload("export.xml", b"<invoice/>", "application/xml")

        assert list(self.upload_path.iterdir()) == []

    def test_upload_rejects_unsupported_content_type(self):
        response = self.upload("notes.txt", b"hello", "text/plain")

        assert response.status_code == 400
        assert response.json()["detail"] == "Only XML and XLSX files are allowed"

    def test_upload_rejects_empty_file(self):
        response = self.upload("export.xml", b"", "application/xml")

        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded"

    def test_upload_rejects_oversize_file(self, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_size_bytes", 16)

        response = self.upload("export.xml", ERP_XML, "application/xml")

        assert response.status_code == 413
        assert list(self.upload_path.iterdir()) == []

    def test_upload_unknown_xml_dialect(self):
        response = self.upload("export.xml", b"<invoice><total>1</total></invoice>", "application/xml")

        assert response.status_code == 422
        assert response.json()["detail"] == "Unknown XML format: unable to detect format type"

    def test_upload_invalid_erp_record(self):
        content = b"<data><record><field name='partner_id'>ACME</field></record></data>"

        response = self.upload("export.xml", content, "application/xml")

        assert response.status_code == 422
        assert response.json()["detail"] == "Missing required field in ERP XML: origin"

    def test_upload_malformed_xml(self):
        response = self.upload("export.xml", b"<data><record>", "application/xml")

        assert response.status_code == 422
        assert response.json()["detail"].startswith("Error processing XML file")

    def test_upload_storage_failure_returns_500(self, monkeypatch):
        from services import parcel_storage

        def fail(self, payload):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(parcel_storage.ParcelStorageService, "store_payload", fail)

        response = self.upload("export.xml", ERP_XML, "application/xml")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process file and store data: database unavailable"
        assert list(self.upload_path.iterdir()) == []
