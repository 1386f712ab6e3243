"""Session reconciliation engine.

Key Components:
    - initialize_issue: First node of a manager run; dispatches on tracker
    - IssueInitializer: Reconciliation algorithm shared by all trackers
    - LinearIssueInitializer / GitHubIssueInitializer: Tracker adapters
    - classify_label: Trigger label policy

Example:
    >>> from swe_intake.engine.router import initialize_issue
    >>> update = await initialize_issue(state, RunConfig(issue_tracker="linear", linear_api_key="..."))
    >>> state = state.apply(update)
"""
