#!/usr/bin/env python3
"""
Fitness Coach Plan Generator
Main entry point for the command line tool.
"""

import argparse
import os
import sys
from datetime import date

from dotenv import load_dotenv

from fitcoach.config import load_config
from fitcoach.daily_planner import DailyPlanner
from fitcoach.errors import CoachError
from fitcoach.plan_generator import ClaudeTextModel, PlanGenerator, describe_set
from fitcoach.reference_data import load_reference_data, seed_reference_data
from fitcoach.split_templates import SPLIT_TEMPLATES
from fitcoach.workout_db import GOAL_CATEGORIES, GOAL_DIRECTIONS, ITEM_TYPES, WorkoutDB
from fitcoach.workout_editing import (
    REDUCE_MODES,
    add_accessory_exercise,
    block_item,
    move_workout_session,
    reduce_workout_volume,
)


ROOT_DIR = os.path.dirname(os.path.abspath(__file__))


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate validated daily workout and meal plans.")
    parser.add_argument("--config", default=None, help="Path to config.yaml (default: repo root).")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the SQLite schema.")

    seed = sub.add_parser("seed", help="Load exercises and meals from a YAML file.")
    seed.add_argument("--file", default=None, help="Reference data file (default: data/reference_data.yaml).")

    add_user = sub.add_parser("add-user", help="Create or update a user.")
    add_user.add_argument("--name", required=True)
    add_user.add_argument("--weight-kg", type=float, default=None)
    add_user.add_argument("--height-cm", type=float, default=None)
    add_user.add_argument("--split", default=None, choices=sorted(SPLIT_TEMPLATES), help="Weekly split template.")
    add_user.add_argument("--days-per-week", type=int, default=None)

    goal = sub.add_parser("set-goal", help="Replace the user's active goal.")
    goal.add_argument("--user", type=int, required=True)
    goal.add_argument("--category", required=True, choices=GOAL_CATEGORIES)
    goal.add_argument("--direction", required=True, choices=GOAL_DIRECTIONS)
    goal.add_argument("--value", type=float, default=None)
    goal.add_argument("--unit", default=None)
    goal.add_argument("--exercise", default=None, help="Target exercise, e.g. 'bench press'.")
    goal.add_argument("--movement", default=None)
    goal.add_argument("--metric", default=None, help="Target metric, e.g. 'distance'.")
    goal.add_argument("--priority", type=int, default=1)

    generate = sub.add_parser("generate", help="Generate and save the plan for one date.")
    generate.add_argument("--user", type=int, required=True)
    generate.add_argument("--date", default=None, help="YYYY-MM-DD (default: today).")

    week = sub.add_parser("week", help="Show the weekly session layout.")
    week.add_argument("--user", type=int, required=True)

    swap_exercise = sub.add_parser("swap-exercise", help="Regenerate one exercise of a session.")
    swap_exercise.add_argument("--session", type=int, required=True)
    swap_exercise.add_argument("--set", type=int, required=True, help="Any set id of the exercise to replace.")

    swap_meal = sub.add_parser("swap-meal", help="Regenerate one planned meal.")
    swap_meal.add_argument("--meal", type=int, required=True, help="Daily meal id.")

    log_set = sub.add_parser("log-set", help="Record a completed set.")
    log_set.add_argument("--set", type=int, required=True)
    log_set.add_argument("--weight", type=float, required=True)
    log_set.add_argument("--reps", type=int, required=True)
    log_set.add_argument("--rpe", type=float, default=None)
    log_set.add_argument("--distance", type=float, default=None)

    reduce = sub.add_parser("reduce", help="Shorten a session.")
    reduce.add_argument("--session", type=int, required=True)
    reduce.add_argument("--mode", default="remove_set", choices=REDUCE_MODES)

    accessory = sub.add_parser("add-accessory", help="Add a 3 x 12 accessory to a session.")
    accessory.add_argument("--user", type=int, required=True)
    accessory.add_argument("--date", default=None)
    accessory.add_argument("--body-part", required=True)

    move = sub.add_parser("move", help="Move a session to another date.")
    move.add_argument("--session", type=int, required=True)
    move.add_argument("--date", required=True)

    block = sub.add_parser("block", help="Never suggest an exercise or meal again.")
    block.add_argument("--user", type=int, required=True)
    block.add_argument("--type", required=True, choices=ITEM_TYPES)
    block.add_argument("--name", required=True)

    return parser.parse_args(argv)


def open_store(config):
    db_path = config["database"]["path"]
    if not os.path.isabs(db_path):
        db_path = os.path.join(ROOT_DIR, db_path)
    return WorkoutDB(db_path)


def build_planner(config, store):
    """DailyPlanner backed by Claude; exits when the API key is missing."""
    api_key_env = config["claude"]["api_key_env"]
    api_key = os.getenv(api_key_env)
    if not api_key:
        print(f"\n❌ Error: {api_key_env} not found in environment variables!")
        print("\nPlease:")
        print("1. Copy .env.example to .env")
        print("2. Add your Anthropic API key to .env")
        sys.exit(1)

    generator = PlanGenerator(ClaudeTextModel(api_key, config), config)
    return DailyPlanner(store, generator, config)


def print_session(session):
    print("\n" + "=" * 60)
    print(f"{session['date']}  {session.get('title') or 'Workout'}")
    print("=" * 60)
    label = f" ({session['day_label']})" if session.get("day_label") else ""
    print(f"Intensity: {session['intensity']}{label}")
    print(f"Body parts: {', '.join(session['body_parts'])}")

    for exercise in session["exercises"]:
        print(f"\n  {exercise['name']}")
        for s in exercise["sets"]:
            planned = {"weight": s["planned_weight"], "reps": s["planned_reps"], "distance": s["planned_distance"]}
            status = " ✓" if s["completed"] else ""
            print(f"    [{s['id']}] set {s['set_number']}: {describe_set(planned)}{status}")

    if session.get("meals"):
        print(f"\nMeals (target {session.get('calorie_target')} kcal, >= {session.get('protein_min')} g protein):")
        for meal in session["meals"]:
            protein = f", {meal['protein']:g} g protein" if meal.get("protein") is not None else ""
            print(f"  [{meal['id']}] {meal.get('meal_type') or 'meal'}: {meal['meal_name']} ({meal['calories']:g} kcal{protein})")

    for key in ("workout_explanation", "meal_explanation"):
        if session.get(key):
            print(f"\n{session[key]}")


def run_command(args, config):
    if args.command in ("init-db", "seed"):
        store = open_store(config)
        try:
            store.init_schema()
            if args.command == "seed":
                data = load_reference_data(args.file)
                exercises, meals = seed_reference_data(store, data)
                print(f"✓ Seeded {exercises} exercises and {meals} meals")
            counts = store.count_summary()
            print("✓ Database ready: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
        finally:
            store.close()
        return 0

    store = open_store(config)
    store.init_schema()
    try:
        if args.command == "add-user":
            with store.transaction():
                user_id = store.upsert_user(
                    args.name, args.weight_kg, args.height_cm, args.split, args.days_per_week
                )
            print(f"✓ User '{args.name}' has id {user_id}")

        elif args.command == "set-goal":
            with store.transaction():
                goal_id = store.create_goal(
                    args.user,
                    args.category,
                    args.direction,
                    value=args.value,
                    unit=args.unit,
                    target_exercise=args.exercise,
                    target_movement=args.movement,
                    target_metric=args.metric,
                    priority=args.priority,
                )
            print(f"✓ Goal {goal_id} is now active for user {args.user}")

        elif args.command == "generate":
            planner = build_planner(config, store)
            on_date = args.date or date.today().isoformat()
            print(f"Generating plan for user {args.user} on {on_date}...")
            result = planner.generate_daily_plan(args.user, on_date)
            print_session(result["session"])

        elif args.command == "week":
            planner = DailyPlanner(store, None, config)
            for session in planner.build_weekly_plan(args.user):
                print(
                    f"  {session['day_name']:<9} {session['name']:<20} "
                    f"{session['intensity']:<8} {', '.join(session['body_parts'])}"
                )

        elif args.command == "swap-exercise":
            planner = build_planner(config, store)
            planner.regenerate_single_exercise(args.session, args.set)
            print_session(store.get_session(args.session))

        elif args.command == "swap-meal":
            planner = build_planner(config, store)
            planner.regenerate_single_meal(args.meal)
            daily_meal = store.get_daily_meal(args.meal)
            print_session(store.get_session(daily_meal["session_id"]))

        elif args.command == "log-set":
            with store.transaction():
                store.log_set(args.set, args.weight, args.reps, args.rpe, args.distance)
            print(f"✓ Logged set {args.set}: {args.weight:g} x {args.reps}")

        elif args.command == "reduce":
            reduce_workout_volume(store, args.session, args.mode)

        elif args.command == "add-accessory":
            add_accessory_exercise(
                store, args.user, args.date or date.today().isoformat(), args.body_part, config
            )

        elif args.command == "move":
            move_workout_session(store, args.session, args.date)

        elif args.command == "block":
            block_item(store, args.user, args.type, args.name)
    finally:
        store.close()
    return 0


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    config = load_config(args.config)

    try:
        return run_command(args, config)
    except CoachError as e:
        print(f"\n❌ {e.user_message()}")
        return 1
    except ValueError as e:
        print(f"\n❌ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
