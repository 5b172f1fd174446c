from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from load_hunter.database import Base, JSONType


class LoadEmail(Base):
    __tablename__ = "load_emails"

    id = Column(Integer, primary_key=True, index=True)
    email_id = Column(String(255), unique=True, index=True, nullable=False)  # external mailbox id
    load_id = Column(String(32), unique=True, index=True, nullable=True)  # LH-YYMMDD-###
    from_email = Column(String(255), nullable=True)
    from_name = Column(String(255), nullable=True)
    subject = Column(Text, nullable=True)
    body_text = Column(Text, nullable=True)
    body_html = Column(Text, nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    parsed_data = Column(JSONType, nullable=True)
    status = Column(String(20), nullable=False, default="new", index=True)  # new|rejected
    has_issues = Column(Boolean, nullable=False, default=False, index=True)
    issue_notes = Column(Text, nullable=True)
    email_source = Column(String(20), nullable=False, default="sylectus")
    content_fingerprint = Column(String(64), nullable=True, index=True)
    dedup_eligible = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
