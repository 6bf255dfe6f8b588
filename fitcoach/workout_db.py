"""
SQLite persistence for goals, reference data, sessions, sets and meals.
"""

import json
import os
import sqlite3
from contextlib import contextmanager

from fitcoach.errors import DuplicateSession, ImmutableItem
from fitcoach.exercise_normalizer import canonical_key


GOAL_CATEGORIES = ("body_composition", "strength", "endurance", "mobility", "skill")
GOAL_DIRECTIONS = ("increase", "decrease", "achieve")
ITEM_TYPES = ("exercise", "meal")


def normalize_exercise_name(name):
    """Stable key for exercise and meal de-duplication."""
    return canonical_key(name)


def _split_tags(value):
    return [t for t in (value or "").split(",") if t]


def _join_tags(values):
    return ",".join(sorted({str(v).strip().lower() for v in values or [] if str(v).strip()}))


def _loads(value, default):
    if not value:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


class WorkoutDB:
    """Small SQLite wrapper for the coaching store."""

    def __init__(self, db_path):
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")

    def close(self):
        self.conn.close()

    @contextmanager
    def transaction(self):
        """Context manager for atomic write operations."""
        try:
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def init_schema(self):
        """Create core schema if it does not already exist."""
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                weight_kg REAL,
                height_cm REAL,
                split_type TEXT,
                days_per_week INTEGER,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS goals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                category TEXT NOT NULL,
                target_exercise TEXT,
                target_movement TEXT,
                target_metric TEXT,
                direction TEXT NOT NULL,
                value REAL,
                unit TEXT,
                priority INTEGER NOT NULL DEFAULT 1,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                normalized_name TEXT NOT NULL UNIQUE,
                body_part TEXT NOT NULL,
                is_compound INTEGER NOT NULL DEFAULT 0,
                equipment TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS meals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                normalized_name TEXT NOT NULL UNIQUE,
                calories REAL NOT NULL,
                protein REAL,
                meal_types TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS workout_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                session_date TEXT NOT NULL,
                title TEXT,
                day_label TEXT,
                intensity TEXT NOT NULL,
                workout_type TEXT NOT NULL DEFAULT 'main',
                body_parts TEXT NOT NULL DEFAULT '[]',
                calorie_target INTEGER,
                protein_min INTEGER,
                workout_explanation TEXT,
                meal_explanation TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                UNIQUE(user_id, session_date)
            );

            CREATE TABLE IF NOT EXISTS exercise_sets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id INTEGER NOT NULL,
                exercise_id INTEGER NOT NULL,
                exercise_order INTEGER NOT NULL DEFAULT 0,
                set_number INTEGER NOT NULL,
                planned_weight REAL,
                planned_reps INTEGER,
                planned_distance REAL,
                actual_weight REAL,
                actual_reps INTEGER,
                actual_rpe REAL,
                actual_distance REAL,
                completed INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                FOREIGN KEY(session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE RESTRICT,
                UNIQUE(session_id, exercise_id, set_number)
            );

            CREATE TABLE IF NOT EXISTS daily_meals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id INTEGER NOT NULL,
                meal_id INTEGER NOT NULL,
                meal_type TEXT,
                order_index INTEGER NOT NULL DEFAULT 0,
                calories REAL,
                protein REAL,
                ingredients TEXT NOT NULL DEFAULT '[]',
                instructions TEXT NOT NULL DEFAULT '[]',
                completed INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY(session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                FOREIGN KEY(meal_id) REFERENCES meals(id) ON DELETE RESTRICT
            );

            CREATE TABLE IF NOT EXISTS blocked_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                item_type TEXT NOT NULL CHECK (item_type IN ('exercise', 'meal')),
                item_id INTEGER NOT NULL,
                item_name TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                UNIQUE(user_id, item_type, item_id)
            );

            CREATE UNIQUE INDEX IF NOT EXISTS idx_goals_one_active
                ON goals(user_id) WHERE is_active = 1;
            CREATE INDEX IF NOT EXISTS idx_workout_sessions_user_date
                ON workout_sessions(user_id, session_date);
            CREATE INDEX IF NOT EXISTS idx_exercise_sets_session_id ON exercise_sets(session_id);
            CREATE INDEX IF NOT EXISTS idx_exercise_sets_exercise_id ON exercise_sets(exercise_id);
            CREATE INDEX IF NOT EXISTS idx_daily_meals_session_id ON daily_meals(session_id);
            """
        )
        self.conn.commit()

    # -------------------------------------------------------------------
    # Users and goals
    # -------------------------------------------------------------------

    def upsert_user(self, name, weight_kg=None, height_cm=None, split_type=None, days_per_week=None):
        """Insert or update a user and return its id."""
        if not (name or "").strip():
            raise ValueError("User name cannot be empty")
        self.conn.execute(
            """
            INSERT INTO users (name, weight_kg, height_cm, split_type, days_per_week)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                weight_kg = COALESCE(excluded.weight_kg, users.weight_kg),
                height_cm = COALESCE(excluded.height_cm, users.height_cm),
                split_type = COALESCE(excluded.split_type, users.split_type),
                days_per_week = COALESCE(excluded.days_per_week, users.days_per_week)
            """,
            (name.strip(), weight_kg, height_cm, split_type, days_per_week),
        )
        row = self.conn.execute("SELECT id FROM users WHERE name = ?", (name.strip(),)).fetchone()
        return int(row["id"])

    def get_user(self, user_id):
        row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def create_goal(
        self,
        user_id,
        category,
        direction,
        value=None,
        unit=None,
        target_exercise=None,
        target_movement=None,
        target_metric=None,
        priority=1,
    ):
        """Insert a new active goal, deactivating the previous one. Returns the goal id."""
        if category not in GOAL_CATEGORIES:
            raise ValueError(f"Unknown goal category '{category}'")
        if direction not in GOAL_DIRECTIONS:
            raise ValueError(f"Unknown goal direction '{direction}'")

        self.conn.execute(
            "UPDATE goals SET is_active = 0 WHERE user_id = ? AND is_active = 1",
            (user_id,),
        )
        cursor = self.conn.execute(
            """
            INSERT INTO goals (
                user_id, category, target_exercise, target_movement, target_metric,
                direction, value, unit, priority, is_active
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
            """,
            (user_id, category, target_exercise, target_movement, target_metric, direction, value, unit, priority),
        )
        return int(cursor.lastrowid)

    def get_active_goal(self, user_id):
        row = self.conn.execute(
            "SELECT * FROM goals WHERE user_id = ? AND is_active = 1",
            (user_id,),
        ).fetchone()
        if not row:
            return None

        goal = dict(row)
        target = None
        if goal["target_exercise"] or goal["target_movement"] or goal["target_metric"]:
            target = {
                "exercise": goal["target_exercise"],
                "movement": goal["target_movement"],
                "metric": goal["target_metric"],
            }
        return {
            "id": goal["id"],
            "user_id": goal["user_id"],
            "category": goal["category"],
            "target": target,
            "direction": goal["direction"],
            "value": goal["value"],
            "unit": goal["unit"],
            "priority": goal["priority"],
            "is_active": bool(goal["is_active"]),
        }

    # -------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------

    def upsert_exercise(self, name, body_part, is_compound=False, equipment=None):
        """Insert or update an exercise and return its id."""
        normalized = normalize_exercise_name(name)
        if not normalized:
            raise ValueError("Exercise name cannot be empty")

        self.conn.execute(
            """
            INSERT INTO exercises (name, normalized_name, body_part, is_compound, equipment, updated_at)
            VALUES (?, ?, ?, ?, ?, datetime('now'))
            ON CONFLICT(normalized_name) DO UPDATE SET
                name = excluded.name,
                body_part = excluded.body_part,
                is_compound = excluded.is_compound,
                equipment = excluded.equipment,
                updated_at = datetime('now')
            """,
            (name.strip(), normalized, (body_part or "").strip().lower(), int(bool(is_compound)), equipment),
        )
        row = self.conn.execute(
            "SELECT id FROM exercises WHERE normalized_name = ?",
            (normalized,),
        ).fetchone()
        return int(row["id"])

    def upsert_meal(self, name, calories, protein=None, meal_types=None):
        """Insert or update a meal and return its id."""
        normalized = normalize_exercise_name(name)
        if not normalized:
            raise ValueError("Meal name cannot be empty")

        self.conn.execute(
            """
            INSERT INTO meals (name, normalized_name, calories, protein, meal_types, updated_at)
            VALUES (?, ?, ?, ?, ?, datetime('now'))
            ON CONFLICT(normalized_name) DO UPDATE SET
                name = excluded.name,
                calories = excluded.calories,
                protein = excluded.protein,
                meal_types = excluded.meal_types,
                updated_at = datetime('now')
            """,
            (name.strip(), normalized, float(calories), protein, _join_tags(meal_types)),
        )
        row = self.conn.execute(
            "SELECT id FROM meals WHERE normalized_name = ?",
            (normalized,),
        ).fetchone()
        return int(row["id"])

    @staticmethod
    def _exercise_from_row(row):
        return {
            "id": row["id"],
            "name": row["name"],
            "body_part": row["body_part"],
            "is_compound": bool(row["is_compound"]),
            "equipment": row["equipment"],
        }

    @staticmethod
    def _meal_from_row(row):
        return {
            "id": row["id"],
            "name": row["name"],
            "calories": row["calories"],
            "protein": row["protein"],
            "meal_types": _split_tags(row["meal_types"]),
        }

    def get_candidate_exercises(self, is_compound=None):
        """All reference exercises, optionally filtered by compound flag."""
        if is_compound is None:
            rows = self.conn.execute("SELECT * FROM exercises ORDER BY id").fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM exercises WHERE is_compound = ? ORDER BY id",
                (int(bool(is_compound)),),
            ).fetchall()
        return [self._exercise_from_row(r) for r in rows]

    def get_candidate_meals(self, meal_type=None):
        """All reference meals; with a meal type, only that type plus untyped meals."""
        rows = self.conn.execute("SELECT * FROM meals ORDER BY id").fetchall()
        meals = [self._meal_from_row(r) for r in rows]
        if meal_type:
            meals = [m for m in meals if not m["meal_types"] or meal_type.lower() in m["meal_types"]]
        return meals

    def get_exercise(self, exercise_id):
        row = self.conn.execute("SELECT * FROM exercises WHERE id = ?", (exercise_id,)).fetchone()
        return self._exercise_from_row(row) if row else None

    def get_meal(self, meal_id):
        row = self.conn.execute("SELECT * FROM meals WHERE id = ?", (meal_id,)).fetchone()
        return self._meal_from_row(row) if row else None

    def find_exercise(self, name):
        row = self.conn.execute(
            "SELECT * FROM exercises WHERE normalized_name = ?",
            (normalize_exercise_name(name),),
        ).fetchone()
        return self._exercise_from_row(row) if row else None

    def find_meal(self, name):
        row = self.conn.execute(
            "SELECT * FROM meals WHERE normalized_name = ?",
            (normalize_exercise_name(name),),
        ).fetchone()
        return self._meal_from_row(row) if row else None

    # -------------------------------------------------------------------
    # Blocked items
    # -------------------------------------------------------------------

    def block_item(self, user_id, item_type, item_id, item_name=None):
        if item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown item type '{item_type}'")
        self.conn.execute(
            """
            INSERT OR IGNORE INTO blocked_items (user_id, item_type, item_id, item_name)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, item_type, item_id, item_name),
        )

    def get_blocked_items(self, user_id):
        rows = self.conn.execute(
            "SELECT item_type, item_id, item_name FROM blocked_items WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [dict(r) for r in rows]

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------

    def _session_from_row(self, row):
        session = dict(row)
        return {
            "id": session["id"],
            "user_id": session["user_id"],
            "date": session["session_date"],
            "title": session["title"],
            "day_label": session["day_label"],
            "intensity": session["intensity"],
            "workout_type": session["workout_type"],
            "body_parts": _loads(session["body_parts"], []),
            "calorie_target": session["calorie_target"],
            "protein_min": session["protein_min"],
            "workout_explanation": session["workout_explanation"],
            "meal_explanation": session["meal_explanation"],
            "exercises": [],
        }

    def _attach_sets(self, sessions):
        by_id = {s["id"]: s for s in sessions}
        if not by_id:
            return sessions

        placeholders = ",".join("?" for _ in by_id)
        rows = self.conn.execute(
            f"""
            SELECT es.*, e.name AS exercise_name, e.is_compound, e.body_part
            FROM exercise_sets es
            JOIN exercises e ON e.id = es.exercise_id
            WHERE es.session_id IN ({placeholders})
            ORDER BY es.session_id, es.exercise_order, es.exercise_id, es.set_number
            """,
            tuple(by_id),
        ).fetchall()

        for row in rows:
            session = by_id[row["session_id"]]
            exercise = next(
                (e for e in session["exercises"] if e["exercise_id"] == row["exercise_id"]),
                None,
            )
            if exercise is None:
                exercise = {
                    "exercise_id": row["exercise_id"],
                    "name": row["exercise_name"],
                    "body_part": row["body_part"],
                    "is_compound": bool(row["is_compound"]),
                    "sets": [],
                }
                session["exercises"].append(exercise)
            exercise["sets"].append({
                "id": row["id"],
                "set_number": row["set_number"],
                "planned_weight": row["planned_weight"],
                "planned_reps": row["planned_reps"],
                "planned_distance": row["planned_distance"],
                "actual_weight": row["actual_weight"],
                "actual_reps": row["actual_reps"],
                "actual_rpe": row["actual_rpe"],
                "actual_distance": row["actual_distance"],
                "completed": bool(row["completed"]),
            })
        return sessions

    def get_recent_workouts(self, user_id, start_date, end_date):
        """Sessions in [start_date, end_date), oldest first, with nested sets."""
        rows = self.conn.execute(
            """
            SELECT *
            FROM workout_sessions
            WHERE user_id = ? AND session_date >= ? AND session_date < ?
            ORDER BY session_date
            """,
            (user_id, str(start_date), str(end_date)),
        ).fetchall()
        return self._attach_sets([self._session_from_row(r) for r in rows])

    def get_session(self, session_id):
        row = self.conn.execute("SELECT * FROM workout_sessions WHERE id = ?", (session_id,)).fetchone()
        if not row:
            return None
        session = self._attach_sets([self._session_from_row(row)])[0]
        session["meals"] = self.get_daily_meals(session_id)
        return session

    def get_session_by_date(self, user_id, session_date):
        row = self.conn.execute(
            "SELECT id FROM workout_sessions WHERE user_id = ? AND session_date = ?",
            (user_id, str(session_date)),
        ).fetchone()
        return self.get_session(row["id"]) if row else None

    def get_used_exercise_ids(self, user_id, start_date, end_date):
        rows = self.conn.execute(
            """
            SELECT DISTINCT es.exercise_id
            FROM exercise_sets es
            JOIN workout_sessions ws ON ws.id = es.session_id
            WHERE ws.user_id = ? AND ws.session_date >= ? AND ws.session_date < ?
            """,
            (user_id, str(start_date), str(end_date)),
        ).fetchall()
        return {int(r["exercise_id"]) for r in rows}

    def get_used_meal_ids(self, user_id, start_date, end_date):
        rows = self.conn.execute(
            """
            SELECT DISTINCT dm.meal_id
            FROM daily_meals dm
            JOIN workout_sessions ws ON ws.id = dm.session_id
            WHERE ws.user_id = ? AND ws.session_date >= ? AND ws.session_date < ?
            """,
            (user_id, str(start_date), str(end_date)),
        ).fetchall()
        return {int(r["meal_id"]) for r in rows}

    # -------------------------------------------------------------------
    # Persistence sinks
    # -------------------------------------------------------------------

    def persist_session(
        self,
        user_id,
        session_date,
        intensity,
        body_parts,
        title=None,
        day_label=None,
        workout_type="main",
        calorie_target=None,
        protein_min=None,
        workout_explanation=None,
        meal_explanation=None,
    ):
        """Insert a session row; a second session for the same date raises DuplicateSession."""
        try:
            cursor = self.conn.execute(
                """
                INSERT INTO workout_sessions (
                    user_id, session_date, title, day_label, intensity, workout_type,
                    body_parts, calorie_target, protein_min, workout_explanation, meal_explanation
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    str(session_date),
                    title,
                    day_label,
                    intensity,
                    workout_type,
                    json.dumps(list(body_parts or [])),
                    calorie_target,
                    protein_min,
                    workout_explanation,
                    meal_explanation,
                ),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateSession(user_id, session_date) from e
            raise
        return int(cursor.lastrowid)

    def persist_exercise_set(
        self,
        session_id,
        exercise_id,
        set_number,
        planned_weight,
        planned_reps,
        planned_distance=None,
        exercise_order=0,
        notes=None,
    ):
        cursor = self.conn.execute(
            """
            INSERT INTO exercise_sets (
                session_id, exercise_id, exercise_order, set_number,
                planned_weight, planned_reps, planned_distance, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (session_id, exercise_id, exercise_order, set_number, planned_weight, planned_reps, planned_distance, notes),
        )
        return int(cursor.lastrowid)

    def persist_daily_meal(
        self,
        session_id,
        meal_id,
        meal_type,
        order_index,
        calories,
        protein=None,
        ingredients=None,
        instructions=None,
    ):
        cursor = self.conn.execute(
            """
            INSERT INTO daily_meals (
                session_id, meal_id, meal_type, order_index, calories, protein, ingredients, instructions
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                meal_id,
                meal_type,
                order_index,
                calories,
                protein,
                json.dumps(list(ingredients or [])),
                json.dumps(list(instructions or [])),
            ),
        )
        return int(cursor.lastrowid)

    # -------------------------------------------------------------------
    # Sets and meals of one session
    # -------------------------------------------------------------------

    def get_exercise_set(self, set_id):
        row = self.conn.execute("SELECT * FROM exercise_sets WHERE id = ?", (set_id,)).fetchone()
        if not row:
            return None
        entry = dict(row)
        entry["completed"] = bool(entry["completed"])
        return entry

    def get_sets_for_exercise(self, session_id, exercise_id):
        rows = self.conn.execute(
            """
            SELECT * FROM exercise_sets
            WHERE session_id = ? AND exercise_id = ?
            ORDER BY set_number
            """,
            (session_id, exercise_id),
        ).fetchall()
        result = []
        for row in rows:
            entry = dict(row)
            entry["completed"] = bool(entry["completed"])
            result.append(entry)
        return result

    def delete_exercise_sets(self, set_ids):
        """Delete planned sets; completed sets are never removed."""
        for set_id in set_ids:
            self.conn.execute(
                "DELETE FROM exercise_sets WHERE id = ? AND completed = 0",
                (set_id,),
            )

    def log_set(self, set_id, actual_weight=None, actual_reps=None, actual_rpe=None, actual_distance=None):
        """Record performance for a set and mark it completed. A completed set is never rewritten."""
        entry = self.get_exercise_set(set_id)
        if entry is None:
            raise ValueError(f"Exercise set {set_id} not found")
        if entry["completed"]:
            raise ImmutableItem(f"Exercise set {set_id} is already logged.")

        cursor = self.conn.execute(
            """
            UPDATE exercise_sets
            SET actual_weight = ?, actual_reps = ?, actual_rpe = ?, actual_distance = ?, completed = 1
            WHERE id = ? AND completed = 0
            """,
            (actual_weight, actual_reps, actual_rpe, actual_distance, set_id),
        )
        if cursor.rowcount == 0:
            raise ImmutableItem(f"Exercise set {set_id} is already logged.")

    def get_daily_meal(self, daily_meal_id):
        row = self.conn.execute("SELECT * FROM daily_meals WHERE id = ?", (daily_meal_id,)).fetchone()
        return self._daily_meal_from_row(row) if row else None

    def get_daily_meals(self, session_id):
        rows = self.conn.execute(
            """
            SELECT dm.*, m.name AS meal_name
            FROM daily_meals dm
            JOIN meals m ON m.id = dm.meal_id
            WHERE dm.session_id = ?
            ORDER BY dm.order_index
            """,
            (session_id,),
        ).fetchall()
        return [self._daily_meal_from_row(r) for r in rows]

    @staticmethod
    def _daily_meal_from_row(row):
        entry = dict(row)
        entry["completed"] = bool(entry["completed"])
        entry["ingredients"] = _loads(entry.get("ingredients"), [])
        entry["instructions"] = _loads(entry.get("instructions"), [])
        return entry

    def replace_daily_meal(self, daily_meal_id, meal_id, calories, protein=None, ingredients=None, instructions=None):
        cursor = self.conn.execute(
            """
            UPDATE daily_meals
            SET meal_id = ?, calories = ?, protein = ?, ingredients = ?, instructions = ?
            WHERE id = ? AND completed = 0
            """,
            (
                meal_id,
                calories,
                protein,
                json.dumps(list(ingredients or [])),
                json.dumps(list(instructions or [])),
                daily_meal_id,
            ),
        )
        return cursor.rowcount

    def complete_meal(self, daily_meal_id):
        self.conn.execute("UPDATE daily_meals SET completed = 1 WHERE id = ?", (daily_meal_id,))

    def move_session(self, session_id, new_date):
        row = self.conn.execute("SELECT user_id FROM workout_sessions WHERE id = ?", (session_id,)).fetchone()
        if not row:
            raise ValueError(f"Session {session_id} not found")
        try:
            self.conn.execute(
                "UPDATE workout_sessions SET session_date = ? WHERE id = ?",
                (str(new_date), session_id),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateSession(row["user_id"], new_date) from e

    def count_summary(self):
        """Return high-level row counts for quick sanity checks."""
        counts = {}
        for table in ["users", "goals", "exercises", "meals", "workout_sessions", "exercise_sets", "daily_meals"]:
            counts[table] = int(self.conn.execute(f"SELECT COUNT(*) AS c FROM {table}").fetchone()["c"])
        return counts
