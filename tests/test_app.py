"""
Tests for the command line interface.
"""

import json

import pytest
from pricematch import __version__
from pricematch.app import main


@pytest.fixture
def candidates_file(tmp_path, valid_candidate_payload):
    myntra = dict(valid_candidate_payload, source="myntra", source_local_id="17234561",
                  title="boAt Airdopes 131 Wireless Earbuds", price_minor_units=109900,
                  url="https://www.myntra.com/17234561")
    path = tmp_path / "candidates.json"
    path.write_text(json.dumps([valid_candidate_payload, myntra]))
    return path


class TestResolveCommand:
    def test_resolve_offline(self, capsys, candidates_file, tmp_path):
        db = tmp_path / "prices.db"
        main([
            "resolve", "--source", "amazon", "--id", "B09MT84WV5",
            "--title", "Boat Airdopes 131 Wireless Earbuds",
            "--candidates", str(candidates_file), "--db", str(db),
        ])

        body = json.loads(capsys.readouterr().out)
        assert body["best_overall"]["source"] == "myntra"
        assert [r["source"] for r in body["results"]] == ["flipkart", "myntra"]
        assert db.exists()

    def test_threshold_flag(self, capsys, candidates_file):
        main([
            "resolve", "--source", "amazon", "--id", "1", "--title", "Boat Airdopes 131 Wireless Earbuds",
            "--candidates", str(candidates_file), "--threshold", "0.9",
        ])
        body = json.loads(capsys.readouterr().out)
        assert body["threshold"] == 0.9
        assert [r["available"] for r in body["results"]] == [False, True]

    def test_requires_a_candidate_source(self):
        with pytest.raises(SystemExit):
            main(["resolve", "--source", "amazon", "--id", "1", "--title", "Boat"])

    def test_invalid_candidates_file(self, tmp_path):
        path = tmp_path / "candidates.json"
        path.write_text(json.dumps([{"source": "flipkart"}]))
        with pytest.raises(SystemExit, match="Invalid input"):
            main(["resolve", "--source", "amazon", "--id", "1", "--title", "Boat", "--candidates", str(path)])

    def test_malformed_config_file(self, tmp_path, candidates_file):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"significant_keywords": "pro"}))
        with pytest.raises(SystemExit, match="significant_keywords must be a list of strings"):
            main([
                "resolve", "--source", "amazon", "--id", "1", "--title", "Boat",
                "--candidates", str(candidates_file), "--config", str(config),
            ])


class TestOtherCommands:
    def test_score(self, capsys, tmp_path, valid_source_payload, valid_candidate_payload):
        source = tmp_path / "source.json"
        candidate = tmp_path / "candidate.json"
        source.write_text(json.dumps(valid_source_payload))
        candidate.write_text(json.dumps(valid_candidate_payload))

        main(["score", "--source-file", str(source), "--candidate-file", str(candidate)])

        body = json.loads(capsys.readouterr().out)
        assert body["score"] == pytest.approx(0.821)

    def test_price(self, capsys):
        main(["price", "--text", "Rs. 1,499.00"])
        assert capsys.readouterr().out.strip() == "149900 (₹1,499.00)"

    def test_price_not_found(self, capsys):
        with pytest.raises(SystemExit):
            main(["price", "--text", "Out of stock"])
        assert "No price found" in capsys.readouterr().out

    def test_history(self, capsys, candidates_file, tmp_path):
        db = tmp_path / "prices.db"
        main([
            "resolve", "--source", "amazon", "--id", "B09MT84WV5",
            "--title", "Boat Airdopes 131 Wireless Earbuds",
            "--candidates", str(candidates_file), "--db", str(db),
        ])
        capsys.readouterr()

        main(["history", "--key", "amazon:B09MT84WV5", "--db", str(db)])
        out = capsys.readouterr().out
        assert "Found 2 observations" in out
        assert "₹899.00" in out

    def test_history_missing_db(self, capsys, tmp_path):
        main(["history", "--key", "amazon:1", "--db", str(tmp_path / "none.db")])
        assert "Database not found" in capsys.readouterr().out

    def test_cleanup(self, capsys, tmp_path):
        main(["cleanup", "--db", str(tmp_path / "prices.db"), "--days", "7"])
        assert "before=0 removed=0 remaining=0" in capsys.readouterr().out

    def test_version(self, capsys):
        main(["--version"])
        assert capsys.readouterr().out.strip() == __version__
