"""Conversion between tracker issues and session content.

Key Functions:
    - render_linear_issue / render_github_issue: Issue record to message text
    - recover_task_plan: Issue description to TaskPlan (or None)
    - embed_task_plan: Write a TaskPlan block into a description
"""
