"""
API tests: the REST boundary over a fresh in-memory database per test.
"""
import io
import json

import openpyxl
import pytest

from metal_ledger.core.config import settings

BASE = "/api/accounts"


@pytest.fixture
def seeded(client):
    """A group, a party with 100 g Dr opening metal and a 22K item."""
    group = client.post(f"{BASE}/groups", json={"name": "Sundry Debtors", "group_type": "Asset"}).json()
    party = client.post(
        f"{BASE}/parties",
        json={
            "name": "Ramesh Jewellers",
            "group_id": group["id"],
            "opening_metal_weight": 100,
            "opening_metal_type": "Dr",
            "wef_date": "2024-04-01",
        },
    ).json()
    item = client.post(
        f"{BASE}/items", json={"name": "22K Chain", "purity": 91.6, "opening_stock_weight": 20}
    ).json()
    return {"group": group, "party": party, "item": item}


def _sale(seeded, **overrides):
    body = {
        "voucher_date": "2024-05-01",
        "voucher_type": "Sales",
        "party_id": seeded["party"]["id"],
        "lines": [
            {
                "item_id": seeded["item"]["id"],
                "gross_weight": 10.5,
                "less_weight": 0.5,
                "purity": 91.6,
                "wastage": 2.0,
                "labour_rate": 350,
            }
        ],
    }
    body.update(overrides)
    return body


class TestService:
    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

    def test_voucher_types(self, client):
        types = {t["voucher_type"]: t for t in client.get("/api/voucher-types").json()}
        assert set(types) == {"Sales", "Purchase", "Issue", "Receipt"}
        assert types["Sales"]["metal"] == "Dr"
        assert types["Receipt"]["cash_received"] == "Cr"
        assert types["Issue"]["cash"] is None
        assert types["Purchase"]["stock"] == "in"


class TestMasters:
    def test_create_returns_201(self, client, seeded):
        assert seeded["party"]["group_name"] == "Sundry Debtors"
        assert seeded["party"]["unique_name"] == "Ramesh Jewellers"
        r = client.get(f"{BASE}/parties/{seeded['party']['id']}")
        assert r.status_code == 200
        assert r.json()["opening_metal_weight"] == 100.0

    def test_duplicate_group_is_409(self, client, seeded):
        r = client.post(f"{BASE}/groups", json={"name": "Sundry Debtors", "group_type": "Asset"})
        assert r.status_code == 409
        assert r.json()["error"]["kind"] == "conflict"

    def test_unknown_group_is_404(self, client):
        r = client.post(f"{BASE}/parties", json={"name": "X", "group_id": 9})
        assert r.status_code == 404
        assert r.json()["error"] == {
            "kind": "reference",
            "message": "Account group not found",
            "field": "group_id",
            "ref_id": 9,
        }

    def test_bad_enum_is_400(self, client):
        r = client.post(f"{BASE}/groups", json={"name": "X", "group_type": "Equity"})
        assert r.status_code == 400
        body = r.json()["error"]
        assert body["kind"] == "validation"
        assert body["field"] == "group_type"

    def test_negative_opening_stock_is_400(self, client):
        r = client.post(f"{BASE}/items", json={"name": "Bad", "opening_stock_weight": -1})
        assert r.status_code == 400
        assert r.json()["error"]["field"] == "opening_stock_weight"

    def test_delete_referenced_party_is_409(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        r = client.delete(f"{BASE}/parties/{seeded['party']['id']}")
        assert r.status_code == 409
        assert r.json()["error"]["kind"] == "reference"

    def test_delete_group_in_use_is_409(self, client, seeded):
        r = client.delete(f"{BASE}/groups/{seeded['group']['id']}")
        assert r.status_code == 409

    def test_delete_unused_item(self, client, seeded):
        r = client.delete(f"{BASE}/items/{seeded['item']['id']}")
        assert r.status_code == 200
        assert r.json() == {"status": "deleted", "id": seeded["item"]["id"]}
        assert client.get(f"{BASE}/items/{seeded['item']['id']}").status_code == 404

    def test_list_parties_by_group(self, client, seeded):
        r = client.get(f"{BASE}/parties", params={"group_id": seeded["group"]["id"]})
        assert [p["name"] for p in r.json()] == ["Ramesh Jewellers"]


class TestVouchers:
    def test_post_and_fetch(self, client, seeded):
        r = client.post(f"{BASE}/vouchers", json=_sale(seeded), headers={"X-User": "counter-1"})
        assert r.status_code == 201
        v = r.json()
        assert v["voucher_no"] == "VCH-000001"
        assert v["posted_by"] == "counter-1"
        assert v["party_name"] == "Ramesh Jewellers"
        assert v["total_fine_weight"] == 9.36
        assert v["lines"][0]["item_name"] == "22K Chain"
        assert v["lines"][0]["net_weight"] == 10.0

        fetched = client.get(f"{BASE}/vouchers/{v['id']}").json()
        assert fetched["total_amount"] == 3500.0

    def test_invalid_line_is_400(self, client, seeded):
        body = _sale(seeded)
        body["lines"][0]["less_weight"] = 11
        r = client.post(f"{BASE}/vouchers", json=body)
        assert r.status_code == 400
        assert r.json()["error"]["field"] == "lines[0].gross_weight"

    def test_nan_weight_is_400(self, client, seeded):
        body = _sale(seeded)
        body["lines"][0]["gross_weight"] = float("nan")
        r = client.post(
            f"{BASE}/vouchers",
            content=json.dumps(body),
            headers={"Content-Type": "application/json"},
        )
        assert r.status_code == 400
        assert r.json()["error"]["field"] == "lines[0].gross_weight"

    def test_huge_weight_is_400(self, client, seeded):
        body = _sale(seeded)
        body["lines"][0]["gross_weight"] = 1e30
        r = client.post(f"{BASE}/vouchers", json=body)
        assert r.status_code == 400

    def test_unknown_item_is_404(self, client, seeded):
        body = _sale(seeded)
        body["lines"][0]["item_id"] = 999
        r = client.post(f"{BASE}/vouchers", json=body)
        assert r.status_code == 404
        assert r.json()["error"]["field"] == "lines[0].item_id"

    def test_duplicate_voucher_no_is_409(self, client, seeded):
        assert client.post(f"{BASE}/vouchers", json=_sale(seeded, voucher_no="S/1")).status_code == 201
        r = client.post(f"{BASE}/vouchers", json=_sale(seeded, voucher_no="S/1"))
        assert r.status_code == 409

    def test_missing_date_is_400(self, client, seeded):
        body = _sale(seeded)
        del body["voucher_date"]
        r = client.post(f"{BASE}/vouchers", json=body)
        assert r.status_code == 400
        assert r.json()["error"]["field"] == "voucher_date"

    def test_no_edit_endpoints(self, client, seeded):
        vid = client.post(f"{BASE}/vouchers", json=_sale(seeded)).json()["id"]
        assert client.put(f"{BASE}/vouchers/{vid}", json=_sale(seeded)).status_code == 405
        assert client.delete(f"{BASE}/vouchers/{vid}").status_code == 405

    def test_reverse(self, client, seeded):
        vid = client.post(f"{BASE}/vouchers", json=_sale(seeded)).json()["id"]
        r = client.post(f"{BASE}/vouchers/{vid}/reverse", json={"narration": "wrong weight"})
        assert r.status_code == 201
        assert r.json()["reverses_id"] == vid
        assert client.get(f"{BASE}/vouchers/{vid}").json()["reversed_by_id"] == r.json()["id"]
        assert client.post(f"{BASE}/vouchers/{vid}/reverse").status_code == 409

    def test_list(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        client.post(
            f"{BASE}/vouchers",
            json={
                "voucher_date": "2024-05-02",
                "voucher_type": "Receipt",
                "party_id": seeded["party"]["id"],
                "cash_received": 500,
            },
        )
        r = client.get(f"{BASE}/vouchers", params={"voucher_type": "Receipt"})
        assert r.json()["total"] == 1
        assert r.json()["items"][0]["cash_received"] == 500.0

    def test_unknown_voucher_is_404(self, client):
        r = client.get(f"{BASE}/vouchers/31337")
        assert r.status_code == 404
        assert r.json()["error"]["kind"] == "not_found"


class TestProjections:
    def test_ledger(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        r = client.get(f"{BASE}/ledger/{seeded['party']['id']}")
        assert r.status_code == 200
        view = r.json()
        assert view["opening_balance"]["metal"] == 100.0
        assert view["transactions"][1]["metal_dr"] == 9.36
        assert view["closing_balance"]["metal"] == 109.36
        assert view["closing_balance"]["cash"] == 3500.0

    def test_ledger_unknown_party(self, client):
        assert client.get(f"{BASE}/ledger/555").status_code == 404

    def test_inventory(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        (row,) = client.get(f"{BASE}/items").json()
        assert row["opening_stock"] == 20.0
        assert row["current_stock"] == 10.64
        assert row["status"] == "OK"

    def test_item_movement(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        r = client.get(
            f"{BASE}/items/{seeded['item']['id']}/movement",
            params={"months": 2, "as_of": "2024-05-31"},
        )
        report = r.json()
        assert [m["month"] for m in report["monthly_data"]] == ["2024-04", "2024-05"]
        assert report["monthly_data"][1]["outward"] == 9.36
        assert report["closing"] == 10.64

    def test_export_csv(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        r = client.get(f"{BASE}/ledger/{seeded['party']['id']}/export", params={"fmt": "csv"})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/csv")
        assert "ledger_Ramesh_Jewellers.csv" in r.headers["content-disposition"]
        lines = r.text.strip().splitlines()
        assert lines[0].startswith("Date,Vch No,Particulars")
        assert "109.360" in lines[2]

    def test_export_xlsx(self, client, seeded):
        client.post(f"{BASE}/vouchers", json=_sale(seeded))
        r = client.get(f"{BASE}/ledger/{seeded['party']['id']}/export", params={"fmt": "xlsx"})
        assert r.status_code == 200
        ws = openpyxl.load_workbook(io.BytesIO(r.content)).active
        assert ws.cell(row=2, column=1).value == "Date"
        assert ws.cell(row=3, column=3).value == "Opening Balance"
        assert ws.cell(row=4, column=5).value == 9.36

    def test_export_bad_format(self, client, seeded):
        r = client.get(f"{BASE}/ledger/{seeded['party']['id']}/export", params={"fmt": "pdf"})
        assert r.status_code == 400


class TestCallerIdentity:
    def test_write_requires_header(self, client, seeded, monkeypatch):
        monkeypatch.setattr(settings, "AUTH_REQUIRED", True)
        r = client.post(f"{BASE}/vouchers", json=_sale(seeded))
        assert r.status_code == 401
        r = client.post(f"{BASE}/vouchers", json=_sale(seeded), headers={"X-User": "admin"})
        assert r.status_code == 201

    def test_reads_do_not_require_header(self, client, seeded, monkeypatch):
        monkeypatch.setattr(settings, "AUTH_REQUIRED", True)
        assert client.get(f"{BASE}/ledger/{seeded['party']['id']}").status_code == 200
