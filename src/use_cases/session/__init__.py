from .orchestrator import SessionOrchestrator, SessionStatus, STATUS_TEXT

__all__ = ["SessionOrchestrator", "SessionStatus", "STATUS_TEXT"]
