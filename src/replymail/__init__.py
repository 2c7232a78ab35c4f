"""Reply-by-email receiver: turns inbound mail into notes, issues, and merge requests."""
