"""
Create the bridge's tables from the SQLAlchemy models.
main.py does the same on startup; run this to prepare a fresh database ahead of a deploy.
"""
from app.database import engine, Base
from app import models  # noqa: F401 - register all models with Base

Base.metadata.create_all(bind=engine)
print("Tables created (or already exist).")
