import pathlib

VERSIONS = pathlib.Path(__file__).parents[1] / 'backend' / 'alembic' / 'versions'


def test_initial_migration_creates_all_tables():
    """Static check that 001 creates every table the models define."""
    p = VERSIONS / '001_initial.py'
    assert p.exists(), "Initial migration file not found"
    txt = p.read_text()
    assert "revision = '001'" in txt
    assert 'down_revision = None' in txt
    for table in ('inventory', 'stock_transactions', 'reservations', 'alerts', 'reports', 'archives'):
        assert f"'{table}'," in txt, f"Initial migration should create {table}"
    assert "ondelete='CASCADE'" in txt, "Ledger and reservation rows should cascade with their item"


def test_priority_migration_backfills_before_indexing():
    """Static check that 002 backfills priority from status and indexes the board columns."""
    p = VERSIONS / '002_reservation_priority.py'
    assert p.exists(), "Reservation priority migration file not found"
    txt = p.read_text()
    assert "down_revision = '001'" in txt
    assert 'UPDATE reservations SET priority_level = CASE status' in txt
    assert txt.index('UPDATE reservations') < txt.index("create_index('ix_reservations_priority_level_created_at'")
    assert "create_index('ix_reservations_is_urgent_status'" in txt
    assert "drop_column('reservations', 'priority_level')" in txt
