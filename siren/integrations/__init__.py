"""External collaborators: notifier providers and the contacts backend."""
