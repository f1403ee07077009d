"""Keep GitHub and Jira issues, comments, labels and assignees in sync."""
