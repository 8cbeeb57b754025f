"""
API server package: FastAPI routes over the report pipeline and the
SQLAlchemy stats store (db_report_stats).
"""
