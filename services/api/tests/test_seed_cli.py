from app.ingestion.cli import seed
from click.testing import CliRunner
from sqlalchemy import create_engine, text


def _csv(tmp_path):
    path = tmp_path / "books.csv"
    path.write_text(
        "title,author,rating,genres\n"
        "Dune,Frank Herbert,4.25,\"['Science Fiction']\"\n"
        "DUNE,frank herbert,1.0,\n"
        ",Nobody,,\n",
        encoding="utf-8",
    )
    return path


def test_seed_command_reports_counts(tmp_path):
    db_url = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"
    result = CliRunner().invoke(seed, [str(_csv(tmp_path)), "--database-url", db_url, "--yes"])

    assert result.exit_code == 0, result.output
    assert "Inserted 1 books" in result.output
    assert "Skipped 1 duplicate" in result.output
    assert "Skipped 1 records missing" in result.output

    eng = create_engine(db_url)
    with eng.connect() as conn:
        assert conn.execute(text("SELECT title FROM books")).scalars().all() == ["Dune"]
    eng.dispose()


def test_seed_command_asks_before_clearing(tmp_path):
    db_url = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"
    result = CliRunner().invoke(seed, [str(_csv(tmp_path)), "--database-url", db_url], input="n\n")

    assert result.exit_code == 1
    assert not (tmp_path / "cli.db").exists()


def test_seed_command_missing_file_exits_nonzero(tmp_path):
    db_url = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"
    result = CliRunner().invoke(seed, [str(tmp_path / "missing.csv"), "--database-url", db_url, "--yes"])

    assert result.exit_code == 1
    assert "Seed aborted" in result.output
