"""Flask CLI commands."""

import json

from vendascontrol.models import User
from vendascontrol.services import document_store as store


def _line(product_id, quantity, price=10.0):
    return {"productId": product_id, "quantity": quantity, "unitPrice": price}


def test_system_init_is_idempotent(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert "Created admin user" in first.output
    assert "already exists" in second.output
    assert User.query.filter_by(role="admin").count() == 1
    assert store.get_document(store.SETTINGS, "registration") is not None


def test_users_create_and_list(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create", "--name", "Bia", "--email", "bia@test.local",
        "--password", "bia1234", "--role", "seller",
    ])
    assert result.exit_code == 0, result.output

    short = runner.invoke(args=[
        "users", "create", "--name", "Bia", "--email", "bia2@test.local", "--password", "1",
    ])
    assert short.exit_code != 0

    listing = runner.invoke(args=["users", "list"])
    assert "bia@test.local" in listing.output


def test_budgets_sync_command(app, customer, make_product, make_budget):
    pid = make_product(quantity=5)
    make_budget(customer, [_line(pid, 2)], status="approved")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["budgets", "sync"])
    again = runner.invoke(args=["budgets", "sync"])

    assert "Created 1 sale(s)" in result.output
    assert "Created 0 sale(s)" in again.output
    assert store.require_document(store.PRODUCTS, pid).get("quantity") == 3


def test_backup_export_import(app, customer, tmp_path):
    runner = app.test_cli_runner()
    path = tmp_path / "backup.json"

    result = runner.invoke(args=["backup", "export", "--output", str(path)])
    assert result.exit_code == 0, result.output
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["customers"][0]["_id"] == customer

    data["customers"][0]["name"] = "Via CLI"
    path.write_text(json.dumps(data), encoding="utf-8")

    result = runner.invoke(args=["backup", "import", str(path), "--yes"])
    assert result.exit_code == 0, result.output
    assert store.require_document(store.CUSTOMERS, customer).get("name") == "Via CLI"
