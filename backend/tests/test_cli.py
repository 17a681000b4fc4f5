"""
Flask CLI commands.
"""

from shopstock.models import User


def test_system_init_seeds_admin_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--admin-email", "boss@shop.test", "--admin-password", "secret1"])
    assert result.exit_code == 0, result.output
    assert "Created admin: boss@shop.test" in result.output

    again = runner.invoke(args=["system", "init"])
    assert "no admin seeded" in again.output
    assert db_session.query(User).count() == 1


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--email", "mgr@shop.test", "--name", "Mona", "--password", "secret1", "--role", "manager",
    ])
    assert result.exit_code == 0, result.output
    assert db_session.query(User).filter_by(email="mgr@shop.test").one().role == "MANAGER"

    listing = runner.invoke(args=["users", "list"])
    assert "mgr@shop.test" in listing.output
    assert "MANAGER" in listing.output


def test_users_create_rejects_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--email", "x@shop.test", "--name", "X", "--password", "abc", "--role", "CLERK",
    ])
    assert result.exit_code == 1
    assert "FAIL" in result.output
