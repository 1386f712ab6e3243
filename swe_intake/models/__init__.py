"""Data models for swe-intake.

This package defines the normalized tracker records and the session state
that every workflow node reads and updates.

Key Models:
    - LinearIssue, GitHubIssue: Tracker issue snapshots
    - SessionState: Run-scoped workflow state
    - StateUpdate: Partial update returned by a node
    - ChatMessage: One unit of conversation
    - TaskPlan: The agent's decomposed work

Example:
    >>> from swe_intake.models.state import SessionState, StateUpdate
    >>> state = SessionState().apply(StateUpdate(auto_accept_plan=True))
"""
