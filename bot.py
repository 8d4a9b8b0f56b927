"""
LTVBoost - Telegram Bot
Store analytics for small e-commerce merchants.

Features:
- /onboard: Save store metrics and get LTV recommendations
- /recs: List saved recommendations, /done and /undo to track them
- /pnl: Monthly profit & loss from your latest revenue
- /ads: How far ad spend can scale
- /ltv: LTV and target MER
- /history: Recent calculations
- Rate limiting + Redis persistence
"""

import time

import requests
from loguru import logger

from ltvboost import store
from ltvboost.config import config
from ltvboost.history import HistoryStore
from ltvboost.log import setup_logging
from ltvboost.metrics import calculate_ltv, format_currency, get_target_mer
from ltvboost.recommendations import StoreMetrics, format_recommendations
from ltvboost.validator import InputValidationError, validate_ltv_inputs

API_URL = f"https://api.telegram.org/bot{config.BOT_TOKEN}"
history = HistoryStore(config.REDIS_URL, config.MAX_HISTORY)

HELP_TEXT = (
    "📖 *LTVBoost commands*\n\n"
    "/onboard `aov revenue repeat% niche` — save metrics, get plays\n"
    "  e.g. `/onboard 30 5000 10 beauty`\n"
    "/recs — your saved recommendations\n"
    "/done `id` · /undo `id` — track what you implemented\n"
    "/pnl `margin% adspend opex` — monthly P&L\n"
    "/ads `margin% [ratio] [adspend]` — ad scalability\n"
    "/ltv `aov repeat%` — LTV and target MER\n"
    "/history — recent calculations"
)


def tg_request(method: str, params: dict = None, json_data: dict = None):
    """Make Telegram API request."""
    try:
        if json_data:
            r = requests.post(f"{API_URL}/{method}", json=json_data, timeout=35)
        else:
            r = requests.get(f"{API_URL}/{method}", params=params, timeout=35)
        return r.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Telegram API error in {}: {}", method, e)
        return None


def tg_send(chat_id: int, text: str, reply_to: int = None, parse_mode: str = "Markdown"):
    """Send message, retrying as plain text if Markdown is rejected."""
    params = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }
    if reply_to:
        params["reply_to_message_id"] = reply_to
    if parse_mode:
        params["parse_mode"] = parse_mode
    result = tg_request("sendMessage", params)
    if not result or not result.get("ok"):
        params.pop("parse_mode", None)
        result = tg_request("sendMessage", params)
    return result


def send_long(chat_id: int, text: str, header: str = "", reply_to: int = None):
    """Send long text in chunks."""
    full = header + text if header else text
    if len(full) <= 4000:
        tg_send(chat_id, full, reply_to)
        return
    chunks = [full[i:i + 4000] for i in range(0, len(full), 4000)]
    for i, chunk in enumerate(chunks):
        tg_send(chat_id, chunk, reply_to if i == 0 else None)
        time.sleep(0.3)


def parse_numbers(parts: list[str], count: int) -> list[float]:
    """Parse the first ``count`` arguments as numbers, tolerating $ and %."""
    values = []
    for raw in parts[:count]:
        values.append(float(raw.replace("$", "").replace("%", "").replace(",", "")))
    return values


def cmd_onboard(chat_id: int, msg_id: int, args: list[str]):
    if len(args) < 4:
        tg_send(chat_id, "Usage: `/onboard aov revenue repeat% niche`\ne.g. `/onboard 30 5000 10 beauty`", msg_id)
        return
    aov, revenue, repeat_rate = parse_numbers(args, 3)
    metrics = StoreMetrics(aov=aov, monthly_revenue=revenue, repeat_rate=repeat_rate,
                           niche=" ".join(args[3:]))
    result = store.onboard(chat_id, metrics)
    send_long(chat_id, format_recommendations(result.recommendations),
              f"💾 Metrics saved (#{result.metrics_id})\n\n", msg_id)
    history.add_record(chat_id, "recommendations", f"{len(result.recommendations)} plays")


def cmd_recs(chat_id: int, msg_id: int):
    latest = store.get_latest_metrics(chat_id)
    if latest is None:
        tg_send(chat_id, "📭 No metrics yet. Start with /onboard", msg_id)
        return
    rows = store.list_suggestions(chat_id, latest.id)
    lines = ["📋 *Your LTV plays*\n"]
    for s in rows:
        mark = "✅" if s.implemented else "⬜"
        rec = s.recommendation
        lines.append(f"{mark} `{s.id}` [{rec.priority.value}] {rec.title} — {rec.estimated_impact}")
    send_long(chat_id, "\n".join(lines), reply_to=msg_id)


def cmd_toggle(chat_id: int, msg_id: int, args: list[str], implemented: bool):
    if not args or not args[0].isdigit():
        tg_send(chat_id, "Usage: `/done id` or `/undo id` (ids from /recs)", msg_id)
        return
    suggestion_id = int(args[0])
    if store.set_implemented(chat_id, suggestion_id, implemented):
        tg_send(chat_id, f"{'✅' if implemented else '⬜'} Suggestion {suggestion_id} updated", msg_id)
    else:
        tg_send(chat_id, f"❌ Suggestion {suggestion_id} not found", msg_id)


def cmd_pnl(chat_id: int, msg_id: int, args: list[str]):
    if len(args) < 3:
        tg_send(chat_id, "Usage: `/pnl margin% adspend opex`\ne.g. `/pnl 50 5000 1000`", msg_id)
        return
    margin, ad_spend, opex = parse_numbers(args, 3)
    result = store.pnl_for_user(chat_id, margin, ad_spend, opex)
    send_long(chat_id, f"```\n{result.summary()}\n```", reply_to=msg_id)
    history.add_record(chat_id, "pnl", f"net {format_currency(result.net_profit)}")


def cmd_ads(chat_id: int, msg_id: int, args: list[str]):
    if not args:
        tg_send(chat_id, "Usage: `/ads margin% [ratio] [adspend]`\ne.g. `/ads 50 3 1000`", msg_id)
        return
    numbers = parse_numbers(args, 3)
    margin = numbers[0]
    ratio = numbers[1] if len(numbers) > 1 else 3.0
    ad_spend = numbers[2] if len(numbers) > 2 else 0.0
    result = store.ads_for_user(chat_id, margin, ratio, ad_spend)
    send_long(chat_id, f"```\n{result.summary()}\n```", reply_to=msg_id)
    history.add_record(chat_id, "ads", f"target CAC {format_currency(result.target_cac)}")


def cmd_ltv(chat_id: int, msg_id: int, args: list[str]):
    if len(args) < 2:
        tg_send(chat_id, "Usage: `/ltv aov repeat%`\ne.g. `/ltv 50 20`", msg_id)
        return
    aov, repeat_rate = parse_numbers(args, 2)
    validate_ltv_inputs(aov, repeat_rate).raise_for_errors()
    ltv = calculate_ltv(aov, repeat_rate)
    tg_send(chat_id,
            f"📈 LTV: *{format_currency(ltv)}*\n"
            f"🎯 Target MER: *{get_target_mer(aov, repeat_rate):.1f}x*",
            msg_id)
    history.add_record(chat_id, "ltv", f"LTV {format_currency(ltv)}")


def cmd_history(chat_id: int, msg_id: int):
    """Show calculation history."""
    records = history.get_history(chat_id, 10)
    if not records:
        tg_send(chat_id, "📭 No calculations yet", msg_id)
        return
    lines = ["🕑 *Recent calculations*\n"]
    for i, r in enumerate(records, 1):
        ts = time.strftime("%m-%d %H:%M", time.localtime(r["ts"]))
        lines.append(f"{i}. [{ts}] {r['calculator']} — {r['summary']}")
    tg_send(chat_id, "\n".join(lines), msg_id)


def process_message(chat_id: int, msg_id: int, text: str):
    """Route messages to handlers."""
    parts = text.split()
    command = parts[0].split("@")[0].lower()
    args = parts[1:]

    if command == "/start":
        tg_send(chat_id, "🚀 *LTVBoost*\n\nGrow lifetime value, not just ad spend.\n\n" + HELP_TEXT, msg_id)
        return

    if command == "/help":
        tg_send(chat_id, HELP_TEXT, msg_id)
        return

    if command == "/history":
        cmd_history(chat_id, msg_id)
        return

    handlers = {
        "/onboard": lambda: cmd_onboard(chat_id, msg_id, args),
        "/recs": lambda: cmd_recs(chat_id, msg_id),
        "/done": lambda: cmd_toggle(chat_id, msg_id, args, True),
        "/undo": lambda: cmd_toggle(chat_id, msg_id, args, False),
        "/pnl": lambda: cmd_pnl(chat_id, msg_id, args),
        "/ads": lambda: cmd_ads(chat_id, msg_id, args),
        "/ltv": lambda: cmd_ltv(chat_id, msg_id, args),
    }
    handler = handlers.get(command)
    if handler is None:
        tg_send(chat_id, "Unknown command. Send /help to see what I can do.", msg_id)
        return

    if not history.check_rate_limit(chat_id, config.RATE_LIMIT_PER_MIN):
        tg_send(chat_id, f"⚠️ Too many requests, try again in a minute "
                         f"(limit {config.RATE_LIMIT_PER_MIN}/min)", msg_id)
        return

    try:
        handler()
        logger.info("{} | chat {}", command, chat_id)
    except InputValidationError as e:
        tg_send(chat_id, f"❌ {e}", msg_id)
    except ValueError:
        tg_send(chat_id, "❌ Numbers only, please. Send /help for examples.", msg_id)
    except store.MetricsNotFound:
        tg_send(chat_id, "📭 No store metrics yet. Start with /onboard", msg_id)


def main():
    config.validate()
    setup_logging()
    store.init_db()

    logger.info("LTVBoost bot starting | Redis: {}",
                "connected" if history.redis else "in-memory fallback")

    me = tg_request("getMe")
    if me and me.get("ok"):
        logger.info("@{} is online", me["result"]["username"])
    else:
        logger.error("Cannot reach Telegram")
        return

    offset = None
    while True:
        try:
            params = {"timeout": 30}
            if offset:
                params["offset"] = offset
            result = tg_request("getUpdates", params)
            if not result or not result.get("ok"):
                time.sleep(5)
                continue

            for update in result.get("result", []):
                offset = update["update_id"] + 1
                msg = update.get("message")
                if not msg:
                    continue
                chat_id = msg["chat"]["id"]
                msg_id = msg.get("message_id")
                text = (msg.get("text") or "").strip()
                if text:
                    process_message(chat_id, msg_id, text)

        except KeyboardInterrupt:
            logger.info("Stopped")
            break
        except Exception:
            logger.exception("Update loop error")
            time.sleep(5)


if __name__ == "__main__":
    main()
