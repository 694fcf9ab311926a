"""
CHIPCASINO - Free Chips

Ways to get chips without winning them:

  1. Daily bonus: a fixed grant once per rolling window
  2. Tedious tasks: math / trivia / captcha / typing / waiting, only
     offered while the balance is exactly zero, each with its own cooldown
  3. Admin grants: signed adjustments, audited, never below zero

Every grant is a single guarded UPDATE so a double submit pays once.
Achievements live here too: one row per (user, type), unlocked once.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from numbers import Real
from typing import Callable, Optional

from config.settings import EconomyConfig
from sim_engine.rmg.errors import CooldownError, GameError, InvalidMoveError, NotFoundError
from tools.ledger import Ledger, new_id

logger = logging.getLogger("chipcasino.rewards")


def _num(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def verify_task_completion(task_type: str, data: dict) -> bool:
    """Check the client's proof of work for a task."""
    data = data or {}
    if task_type == "math":
        return data.get("problemsSolved") == 20 and data.get("correctCount") == 20
    if task_type == "trivia":
        return data.get("questionsAnswered") == 5 and data.get("correctCount") == 5
    if task_type == "captcha":
        return data.get("captchasSolved") == 10
    if task_type in ("typing", "waiting"):
        elapsed, min_time = data.get("timeElapsed"), data.get("minTime")
        if data.get("completed") is not True or not (_num(elapsed) and _num(min_time)):
            return False
        if elapsed < min_time:
            return False
        if task_type == "typing":
            return _num(data.get("accuracy")) and data["accuracy"] >= 95
        return data.get("tabFocused") is True
    return False


class TaskUnavailableError(GameError):
    default_message = "Tasks are only available when balance is 0"


class AchievementExistsError(GameError):
    status_code = 409
    default_message = "Achievement already unlocked"


class Rewards:
    def __init__(self, db, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.ledger = Ledger(db)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ═══════════════════════════════════════════════════════════
    # Daily bonus
    # ═══════════════════════════════════════════════════════════

    def _seconds_until_daily(self, last_claim: Optional[str], now: datetime) -> int:
        if not last_claim:
            return 0
        elapsed = (now - datetime.fromisoformat(last_claim)).total_seconds()
        return max(0, math.ceil(EconomyConfig.DAILY_BONUS_SECONDS - elapsed))

    def claim_daily(self, user_id: str) -> dict:
        user = self.ledger.get_user(user_id)
        now = self.clock()
        last = user.get("last_daily_bonus_at")
        remaining = self._seconds_until_daily(last, now)
        if remaining > 0:
            return {
                "success": False,
                "claimed": False,
                "secondsRemaining": remaining,
                "message": "Daily bonus already claimed. Please come back later.",
            }

        amount = EconomyConfig.DAILY_BONUS
        guard = "last_daily_bonus_at IS NULL" if last is None else "last_daily_bonus_at = ?"
        params = [amount, now.isoformat(), user_id] + ([] if last is None else [last])
        self.db.execute(
            f"UPDATE users SET chip_balance = chip_balance + ?, last_daily_bonus_at = ? "
            f"WHERE id = ? AND {guard}",
            params,
        )
        if self.db.rowcount != 1:
            # Another request claimed it between our read and write
            self.db.rollback()
            return {
                "success": False,
                "claimed": False,
                "secondsRemaining": EconomyConfig.DAILY_BONUS_SECONDS,
                "message": "Daily bonus already claimed. Please come back later.",
            }
        balance = self.ledger.balance(user_id)
        self.db.commit()

        self.ledger.record_transaction(user_id, amount, balance, "Daily chips bonus", "daily_bonus")
        self.ledger.record_round(user_id, "daily_bonus", 0, "win", amount)
        logger.info(f"Daily bonus claimed by {user_id}: +{amount}")
        return {
            "success": True,
            "claimed": True,
            "amount": amount,
            "balance": balance,
            "claimedAt": now.isoformat(),
        }

    # ═══════════════════════════════════════════════════════════
    # Task config
    # ═══════════════════════════════════════════════════════════

    def task_configs(self) -> list:
        return self.db.execute("SELECT * FROM task_config ORDER BY task_type").fetchall()

    def task_config(self, task_type: str) -> dict:
        row = self.db.execute(
            "SELECT * FROM task_config WHERE task_type = ?", [task_type]).fetchone()
        if row is None:
            raise NotFoundError("Task configuration not found")
        return row

    def update_task_config(self, task_type: str, reward_amount: int, cooldown_seconds: int) -> dict:
        self.db.execute(
            "INSERT INTO task_config (task_type, reward_amount, cooldown_seconds, updated_at) "
            "VALUES (?, ?, ?, ?) ON CONFLICT (task_type) DO UPDATE SET "
            "reward_amount = excluded.reward_amount, cooldown_seconds = excluded.cooldown_seconds, "
            "updated_at = excluded.updated_at",
            [task_type, reward_amount, cooldown_seconds, self.clock().isoformat()],
        )
        self.db.commit()
        logger.info(f"Task config updated: {task_type} reward={reward_amount} "
                    f"cooldown={cooldown_seconds}s")
        return self.task_config(task_type)

    # ═══════════════════════════════════════════════════════════
    # Tasks
    # ═══════════════════════════════════════════════════════════

    def _cooldown_remaining(self, user_id: str, task_type: str, cooldown_seconds: int) -> int:
        row = self.db.execute(
            "SELECT completed_at FROM task_completions "
            "WHERE user_id = ? AND task_type = ? AND status = 'completed' "
            "ORDER BY completed_at DESC LIMIT 1",
            [user_id, task_type],
        ).fetchone()
        if row is None or not row["completed_at"]:
            return 0
        elapsed = (self.clock() - datetime.fromisoformat(row["completed_at"])).total_seconds()
        return max(0, math.ceil(cooldown_seconds - elapsed))

    def _require_broke(self, user_id: str):
        if self.ledger.balance(user_id) > 0:
            raise TaskUnavailableError()

    def list_tasks(self, user_id: str) -> dict:
        if self.ledger.balance(user_id) > 0:
            return {
                "available": False,
                "message": "Tasks are only available when your balance is 0",
                "tasks": [],
            }
        tasks = []
        for cfg in self.task_configs():
            remaining = self._cooldown_remaining(user_id, cfg["task_type"], cfg["cooldown_seconds"])
            tasks.append({
                "type": cfg["task_type"],
                "reward": cfg["reward_amount"],
                "cooldownSeconds": cfg["cooldown_seconds"],
                "cooldownRemaining": remaining,
                "isOnCooldown": remaining > 0,
                "canStart": remaining == 0,
            })
        return {"available": True, "tasks": tasks}

    def start_task(self, user_id: str, task_type: str) -> dict:
        self._require_broke(user_id)
        cfg = self.task_config(task_type)
        remaining = self._cooldown_remaining(user_id, task_type, cfg["cooldown_seconds"])
        if remaining > 0:
            raise CooldownError("Task is on cooldown", seconds_remaining=remaining)

        # One open attempt per user; starting again replaces it
        self.db.execute(
            "DELETE FROM task_completions WHERE user_id = ? AND status = 'started'", [user_id])
        self.db.execute(
            "INSERT INTO task_completions (id, user_id, task_type, status, started_at) "
            "VALUES (?, ?, ?, 'started', ?)",
            [new_id(), user_id, task_type, self.clock().isoformat()],
        )
        self.db.commit()
        return {"success": True, "message": "Task started"}

    def task_status(self, user_id: str) -> dict:
        row = self.db.execute(
            "SELECT task_type, started_at FROM task_completions "
            "WHERE user_id = ? AND status = 'started' ORDER BY started_at DESC LIMIT 1",
            [user_id],
        ).fetchone()
        if row is None:
            return {"activeTask": None, "status": "idle"}
        return {
            "activeTask": {"type": row["task_type"], "startedAt": row["started_at"]},
            "status": "in_progress",
        }

    def complete_task(self, user_id: str, task_type: str, completion_data: dict) -> dict:
        self._require_broke(user_id)
        if not verify_task_completion(task_type, completion_data):
            raise InvalidMoveError("Task completion verification failed")
        cfg = self.task_config(task_type)
        remaining = self._cooldown_remaining(user_id, task_type, cfg["cooldown_seconds"])
        if remaining > 0:
            raise CooldownError("Task is on cooldown", seconds_remaining=remaining)

        reward = int(cfg["reward_amount"])
        now = self.clock().isoformat()
        try:
            self.db.execute(
                "UPDATE users SET chip_balance = chip_balance + ? WHERE id = ? AND chip_balance = 0",
                [reward, user_id],
            )
            if self.db.rowcount != 1:
                raise TaskUnavailableError()
            self.db.execute(
                "DELETE FROM task_completions WHERE user_id = ? AND status = 'started'", [user_id])
            self.db.execute(
                "INSERT INTO task_completions (id, user_id, task_type, status, reward_amount, "
                "started_at, completed_at) VALUES (?, ?, ?, 'completed', ?, ?, ?)",
                [new_id(), user_id, task_type, reward, now, now],
            )
            balance = self.ledger.balance(user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.ledger.record_transaction(user_id, reward, balance,
                                       f"Task completion: {task_type}", "tedious_task")
        self.ledger.record_round(user_id, "tedious_task", 0, "win", reward)
        logger.info(f"Task {task_type} completed by {user_id}: +{reward}")
        return {"success": True, "reward": reward, "balance": balance}

    # ═══════════════════════════════════════════════════════════
    # Admin grants
    # ═══════════════════════════════════════════════════════════

    def admin_add_chips(self, admin_id: str, user_id: str, amount: int,
                        reason: Optional[str] = None) -> dict:
        reason = reason or "Admin adjustment"
        try:
            balance = self.ledger.adjust(user_id, amount)
            self.db.execute(
                "INSERT INTO admin_audit_log (id, admin_id, action, target_user_id, amount, reason, created_at) "
                "VALUES (?, ?, 'add_chips', ?, ?, ?, ?)",
                [new_id(), admin_id, user_id, amount, reason, self.clock().isoformat()],
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.ledger.record_transaction(user_id, amount, balance, reason, "admin")
        logging.getLogger("chipcasino.admin").info(
            f"Admin {admin_id} adjusted {user_id} by {amount:+d} ({reason})")
        return {"success": True, "newBalance": balance}

    # ═══════════════════════════════════════════════════════════
    # Achievements
    # ═══════════════════════════════════════════════════════════

    def _achievement_json(self, row: dict) -> dict:
        return {
            "id": row["id"],
            "achievementType": row["achievement_type"],
            "achievementData": json.loads(row["achievement_data"] or "{}"),
            "unlockedAt": row["unlocked_at"],
        }

    def player_stats(self, user_id: str) -> dict:
        """Totals over real game rounds (bonus and task grants excluded)."""
        row = self.db.execute(
            "SELECT COUNT(*) AS games_played, "
            "COALESCE(SUM(CASE WHEN result = 'win' THEN 1 ELSE 0 END), 0) AS wins, "
            "COALESCE(SUM(bet_amount), 0) AS total_wagered, "
            "COALESCE(SUM(winnings), 0) AS net_winnings, "
            "COALESCE(MAX(winnings), 0) AS biggest_win "
            "FROM game_history WHERE user_id = ? "
            "AND game_type NOT IN ('daily_bonus', 'tedious_task')",
            [user_id],
        ).fetchone()
        return {
            "gamesPlayed": int(row["games_played"]),
            "wins": int(row["wins"]),
            "totalWagered": int(row["total_wagered"]),
            "netWinnings": int(row["net_winnings"]),
            "biggestWin": max(0, int(row["biggest_win"])),
        }

    def list_achievements(self, user_id: str) -> dict:
        self.ledger.balance(user_id)
        rows = self.db.execute(
            "SELECT * FROM achievements WHERE user_id = ? ORDER BY unlocked_at DESC",
            [user_id],
        ).fetchall()
        return {
            "achievements": [self._achievement_json(r) for r in rows],
            "stats": self.player_stats(user_id),
        }

    def unlock_achievement(self, user_id: str, achievement_type: str,
                           achievement_data: Optional[dict] = None) -> dict:
        self.ledger.balance(user_id)
        achievement_id = new_id()
        self.db.execute(
            "INSERT INTO achievements (id, user_id, achievement_type, achievement_data, unlocked_at) "
            "VALUES (?, ?, ?, ?, ?) ON CONFLICT (user_id, achievement_type) DO NOTHING",
            [achievement_id, user_id, achievement_type,
             json.dumps(achievement_data or {}), self.clock().isoformat()],
        )
        if self.db.rowcount != 1:
            self.db.rollback()
            raise AchievementExistsError()
        row = self.db.execute(
            "SELECT * FROM achievements WHERE id = ?", [achievement_id]).fetchone()
        self.db.commit()
        logger.info(f"Achievement {achievement_type} unlocked by {user_id}")
        return {"success": True, "achievement": self._achievement_json(row)}
