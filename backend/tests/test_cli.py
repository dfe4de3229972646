from jewelstock.models import Product, Shop
from jewelstock.services.session_service import validate_session


def test_shops_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "shops", "create", "--name", "Gold House", "--owner-name", "Asha", "--owner-email", "asha@cli.test",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created shop Gold House" in result.output
    assert db_session.query(Shop).count() == 1

    result = runner.invoke(args=["shops", "list"])
    assert "asha@cli.test" in result.output

    duplicate = runner.invoke(args=[
        "shops", "create", "--name", "Copy", "--owner-name", "Asha", "--owner-email", "asha@cli.test",
    ])
    assert duplicate.exit_code != 0


def test_users_token_is_valid(app, db_session, owner_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "token", owner_a.email])
    assert result.exit_code == 0, result.output
    context = validate_session(result.output.strip())
    assert context.user.id == owner_a.id


def test_rates_set(app, db_session, shop_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["rates", "set", "--shop-id", str(shop_a.id), "--gold", "6100"])
    assert result.exit_code == 0, result.output
    assert "gold=6100.0" in result.output


def test_ledger_audit_reports_drift(app, db_session, shop_a, ring_a):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["ledger", "audit", "--shop-id", str(shop_a.id)])
    assert result.exit_code == 0
    assert "PASS" in result.output

    product = db_session.get(Product, ring_a["id"])
    product.weight = 99.0
    db_session.commit()

    result = runner.invoke(args=["ledger", "audit", "--shop-id", str(shop_a.id)])
    assert result.exit_code == 1
    assert f"FAIL product {ring_a['id']}" in result.output
