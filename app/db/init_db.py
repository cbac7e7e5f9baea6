"""
Database initialization script.
"""
from app.db.session import SessionLocal, init_db
from app.services.session_service import SessionManager

if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    db = SessionLocal()
    try:
        purged = SessionManager(db).purge_expired()
        print(f"Purged {purged} expired refresh tokens")
    finally:
        db.close()
    print("Database initialized successfully!")
