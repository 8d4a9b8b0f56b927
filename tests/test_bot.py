"""Tests for the LTVBoost bot."""
import os
import sys
from unittest.mock import MagicMock, patch

import pytest
import requests

# Set env before imports
os.environ["BOT_TOKEN"] = "test-token-123"

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import bot
from ltvboost import store
from ltvboost.config import Config, config
from ltvboost.history import HistoryStore


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Fresh database and in-memory history for every test."""
    monkeypatch.setattr(config, "DB_PATH", str(tmp_path / "bot.db"))
    monkeypatch.setattr(bot, "history", HistoryStore(redis_url="redis://invalid:9999/0"))
    store.init_db()


def sent(mock_send):
    return [c.args[1] for c in mock_send.call_args_list]


class TestConfig:
    def test_config_defaults(self, monkeypatch):
        for name in ("LTVBOOST_DB_PATH", "MAX_HISTORY", "RATE_LIMIT_PER_MIN", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        c = Config()
        assert c.DB_PATH == "data/ltvboost.db"
        assert c.MAX_HISTORY == 50
        assert c.RATE_LIMIT_PER_MIN == 10
        assert c.LOG_LEVEL == "INFO"

    def test_config_loads_env(self, monkeypatch):
        monkeypatch.setenv("LTVBOOST_DB_PATH", "/tmp/x.db")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        c = Config()
        assert c.BOT_TOKEN == "test-token-123"
        assert c.DB_PATH == "/tmp/x.db"
        assert c.LOG_LEVEL == "DEBUG"

    def test_validate_missing_token(self):
        c = Config()
        c.BOT_TOKEN = ""
        with pytest.raises(ValueError, match="BOT_TOKEN"):
            c.validate()


class TestTelegramHelpers:
    @patch("bot.requests.get")
    def test_tg_request_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        assert bot.tg_request("getMe") is None

    @patch("bot.requests.post")
    def test_tg_request_json_body(self, mock_post):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"ok": True}
        mock_post.return_value = mock_resp
        assert bot.tg_request("sendMessage", json_data={"chat_id": 1}) == {"ok": True}
        mock_post.assert_called_once()

    @patch("bot.tg_request")
    def test_tg_send_plain_text_fallback(self, mock_req):
        mock_req.side_effect = [{"ok": False}, {"ok": True}]
        bot.tg_send(1, "*broken markdown", 5)
        assert mock_req.call_count == 2
        assert "parse_mode" not in mock_req.call_args_list[1].args[1]

    @patch("bot.time.sleep")
    @patch("bot.tg_send")
    def test_send_long_chunks(self, mock_send, _sleep):
        bot.send_long(1, "x" * 9000, reply_to=7)
        assert mock_send.call_count == 3
        assert mock_send.call_args_list[0].args[2] == 7
        assert mock_send.call_args_list[1].args[2] is None

    def test_parse_numbers(self):
        assert bot.parse_numbers(["$30", "5,000", "10%", "beauty"], 3) == [30, 5000, 10]

    def test_parse_numbers_invalid(self):
        with pytest.raises(ValueError):
            bot.parse_numbers(["thirty"], 1)


class TestBotCommands:
    """Test bot message routing (without actual Telegram API)."""

    @patch("bot.tg_send")
    def test_start_command(self, mock_send):
        bot.process_message(123, 1, "/start")
        assert "LTVBoost" in sent(mock_send)[0]

    @patch("bot.tg_send")
    def test_help_with_bot_suffix(self, mock_send):
        bot.process_message(123, 1, "/help@LTVBoostBot")
        assert sent(mock_send)[0] == bot.HELP_TEXT

    @patch("bot.tg_send")
    def test_unknown_command(self, mock_send):
        bot.process_message(123, 1, "hello")
        assert "Unknown command" in sent(mock_send)[0]

    @patch("bot.tg_send")
    def test_onboard(self, mock_send):
        bot.process_message(123, 1, "/onboard 30 5000 10 beauty")
        text = sent(mock_send)[0]
        assert "Metrics saved (#1)" in text
        assert "Recommended LTV Plays" in text
        assert len(store.list_suggestions(123)) == 4

    @patch("bot.tg_send")
    def test_onboard_multiword_niche(self, mock_send):
        bot.process_message(123, 1, "/onboard 30 5000 10 pet food")
        assert store.get_latest_metrics(123).metrics.niche == "pet food"

    @patch("bot.tg_send")
    def test_onboard_usage(self, mock_send):
        bot.process_message(123, 1, "/onboard 30 5000")
        assert sent(mock_send)[0].startswith("Usage")

    @patch("bot.tg_send")
    def test_onboard_not_numbers(self, mock_send):
        bot.process_message(123, 1, "/onboard thirty 5000 10 beauty")
        assert "Numbers only" in sent(mock_send)[0]

    @patch("bot.tg_send")
    def test_onboard_invalid_metrics(self, mock_send):
        bot.process_message(123, 1, "/onboard 0 5000 10 beauty")
        assert sent(mock_send)[0] == "❌ aov: AOV must be positive"
        assert store.get_latest_metrics(123) is None

    @patch("bot.tg_send")
    def test_recs_without_metrics(self, mock_send):
        bot.process_message(123, 1, "/recs")
        assert "No metrics yet" in sent(mock_send)[0]

    @patch("bot.tg_send")
    def test_recs_and_done(self, mock_send):
        bot.process_message(123, 1, "/onboard 30 5000 10 beauty")
        bot.process_message(123, 2, "/done 1")
        bot.process_message(123, 3, "/recs")
        texts = sent(mock_send)
        assert "Suggestion 1 updated" in texts[1]
        assert "✅ `1`" in texts[2]
        assert "⬜ `2`" in texts[2]

    @patch("bot.tg_send")
    def test_undo(self, mock_send):
        bot.process_message(123, 1, "/onboard 30 5000 10 beauty")
        bot.process_message(123, 2, "/done 1")
        bot.process_message(123, 3, "/undo 1")
        assert not store.list_suggestions(123)[0].implemented

    @patch("bot.tg_send")
    def test_done_other_users_suggestion(self, mock_send):
        bot.process_message(123, 1, "/onboard 30 5000 10 beauty")
        bot.process_message(456, 2, "/done 1")
        assert "not found" in sent(mock_send)[-1]

    @patch("bot.tg_send")
    def test_done_usage(self, mock_send):
        bot.process_message(123, 1, "/done abc")
        assert sent(mock_send)[0].startswith("Usage")

    @patch("bot.tg_send")
    def test_pnl_without_metrics(self, mock_send):
        bot.process_message(123, 1, "/pnl 50 5000 1000")
        assert "No store metrics yet" in sent(mock_send)[0]

    @patch("bot.tg_send")
    def test_pnl(self, mock_send):
        bot.process_message(123, 1, "/onboard 50 20000 20 beauty")
        bot.process_message(123, 2, "/pnl 50% $5,000 1000")
        text = sent(mock_send)[-1]
        assert "$4,000.00" in text
        assert "20.00%" in text

    @patch("bot.tg_send")
    def test_pnl_invalid_margin(self, mock_send):
        bot.process_message(123, 1, "/onboard 50 20000 20 beauty")
        bot.process_message(123, 2, "/pnl 150 0 0")
        assert sent(mock_send)[-1].startswith("❌ gross_margin_percentage")

    @patch("bot.tg_send")
    def test_ads_defaults(self, mock_send):
        bot.process_message(123, 1, "/onboard 50 10000 20 beauty")
        with patch("bot.store.ads_for_user", wraps=store.ads_for_user) as spy:
            bot.process_message(123, 2, "/ads 50")
        spy.assert_called_once_with(123, 50.0, 3.0, 0.0)
        assert "SCALE" in sent(mock_send)[-1]

    @patch("bot.tg_send")
    def test_ltv(self, mock_send):
        bot.process_message(123, 1, "/ltv 50 20")
        text = sent(mock_send)[0]
        assert "$62.50" in text
        assert "2.7x" in text

    @patch("bot.tg_send")
    @pytest.mark.parametrize("text", ["/ltv -5 20", "/ltv nan 20"])
    def test_ltv_invalid_aov(self, mock_send, text):
        bot.process_message(123, 1, text)
        assert sent(mock_send)[0] == "❌ aov: AOV must be positive"
        assert bot.history.get_history(123) == []

    @patch("bot.tg_send")
    def test_ltv_repeat_out_of_range(self, mock_send):
        bot.process_message(123, 1, "/ltv 50 150")
        assert sent(mock_send)[0].startswith("❌ repeat_rate")

    @patch("bot.tg_send")
    def test_history(self, mock_send):
        bot.process_message(123, 1, "/history")
        assert "No calculations yet" in sent(mock_send)[0]

        bot.process_message(123, 2, "/ltv 50 20")
        bot.process_message(123, 3, "/history")
        assert "ltv — LTV $62.50" in sent(mock_send)[-1]

    @patch("bot.tg_send")
    def test_rate_limit(self, mock_send, monkeypatch):
        monkeypatch.setattr(config, "RATE_LIMIT_PER_MIN", 1)
        bot.process_message(123, 1, "/ltv 50 20")
        bot.process_message(123, 2, "/ltv 50 20")
        assert "Too many requests" in sent(mock_send)[-1]
