import os
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

SCHEMA_PATH = Path(__file__).resolve().parent / "backend" / "app" / "core" / "schema.sql"


def run_migrations() -> bool:
    """
    执行 backend/app/core/schema.sql。

    中文注释:
    - 连接串只从 DATABASE_URL 读取（Supabase Project Settings -> Database），严禁写死在代码里。
    - schema.sql 全部使用 IF NOT EXISTS，可重复执行。
    """
    load_dotenv()
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        print("❌ DATABASE_URL is not set")
        return False

    print("🚀 Connecting to database...")
    try:
        conn = psycopg2.connect(db_url)
    except psycopg2.Error as e:
        print(f"❌ Connection failed: {e}")
        return False

    try:
        conn.autocommit = True
        print(f"📄 Reading {SCHEMA_PATH.name}...")
        schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
        with conn.cursor() as cur:
            print("⚡ Executing migrations...")
            cur.execute(schema_sql)
        print("✅ Database migration completed successfully!")
        return True
    except psycopg2.Error as e:
        print(f"❌ Migration failed: {e}")
        return False
    finally:
        conn.close()


if __name__ == "__main__":
    raise SystemExit(0 if run_migrations() else 1)
