import uuid
from sqlalchemy import Boolean, Column, Text, String, DateTime, Integer, ForeignKey, Index, false
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class BulkOperation(Base):
    __tablename__ = 'bulk_operations'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    operation_id = Column(String(64), nullable=False, unique=True, index=True)
    type = Column(Text, nullable=False)  # import|export|bulk_update|bulk_delete|bulk_email
    initiated_by = Column(String(24), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    status = Column(Text, nullable=False, default='pending')  # pending|processing|completed|failed|cancelled
    progress_total = Column(Integer, nullable=False, default=0)
    progress_processed = Column(Integer, nullable=False, default=0)
    progress_successful = Column(Integer, nullable=False, default=0)
    progress_failed = Column(Integer, nullable=False, default=0)
    # Cancel issued from a process that is not running the job
    cancel_requested = Column(Boolean, nullable=False, default=False, server_default=false())
    parameters = Column(JSONB, nullable=True)
    # {"successfulItems": [...], "failedItems": [...], "summary": {...}}
    results = Column(JSONB, nullable=True)
    input_file = Column(Text, nullable=True)
    output_file = Column(Text, nullable=True)
    errors_file = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_bulk_operations_initiated_by_created_at', 'initiated_by', 'created_at'),
        Index('ix_bulk_operations_status_created_at', 'status', 'created_at'),
    )

    @property
    def progress(self):
        return {
            "total": self.progress_total or 0,
            "processed": self.progress_processed or 0,
            "successful": self.progress_successful or 0,
            "failed": self.progress_failed or 0,
        }

    @property
    def files(self):
        return {
            "input": self.input_file,
            "output": self.output_file,
            "errors": self.errors_file,
        }
