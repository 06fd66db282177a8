"""
Migration: add the uniqueness backstops for the learning tables.

- enrollments: one row per (user_id, course_id)
- module_progress: one row per (user_id, module_id)
- quiz_answers: one row per (attempt_id, question_id)
- certificates: one row per (user_id, course_id)
- quiz_attempts: at most one in_progress row per (user_id, quiz_id) (partial index)

Every table is checked for duplicates before any index is created; sqlite
commits each CREATE INDEX on its own, so a failure halfway would leave some
indexes behind. With duplicates present the script reports them and exits
without touching the schema.
"""

import os
import sqlite3

INDEXES = [
    ("enrollments", "uq_enrollments_user_course", ("user_id", "course_id"), ""),
    ("module_progress", "uq_module_progress_user_module", ("user_id", "module_id"), ""),
    ("quiz_answers", "uq_quiz_answers_attempt_question", ("attempt_id", "question_id"), ""),
    ("certificates", "uq_certificates_user_course", ("user_id", "course_id"), ""),
    ("quiz_attempts", "uq_quiz_attempts_open", ("user_id", "quiz_id"), "status = 'in_progress'"),
]


class DuplicateRowsError(RuntimeError):
    pass


def _table_exists(cursor, table: str) -> bool:
    cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


def find_duplicates(cursor, table: str, columns: tuple, where: str) -> list:
    cols = ", ".join(columns)
    where_sql = f" WHERE {where}" if where else ""
    cursor.execute(
        f"SELECT {cols}, COUNT(*) FROM {table}{where_sql} GROUP BY {cols} HAVING COUNT(*) > 1"
    )
    return cursor.fetchall()


def run_migration(db_path: str | None = None):
    db_path = db_path or os.getenv("DATABASE_URL", "sqlite:///./lms.db").replace("sqlite:///", "")
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        pending = []
        blocked = []
        for table, name, columns, where in INDEXES:
            if not _table_exists(cursor, table):
                print(f"{table} table not found. Skipping {name}.")
                continue
            duplicates = find_duplicates(cursor, table, columns, where)
            if duplicates:
                blocked.append((table, name, duplicates))
            else:
                pending.append((table, name, columns, where))

        if blocked:
            for table, name, duplicates in blocked:
                print(f"{table}: {len(duplicates)} duplicate group(s) block {name}, e.g. {duplicates[0]}")
            raise DuplicateRowsError("Duplicate rows block the migration, resolve them first")

        for table, name, columns, where in pending:
            where_sql = f" WHERE {where}" if where else ""
            cursor.execute(f"CREATE UNIQUE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(columns)}){where_sql}")
            print(f"{table}: ensured {name}")
        conn.commit()
        print("Migration add_learning_unique_indexes completed successfully")
    finally:
        conn.close()


if __name__ == "__main__":
    run_migration()
