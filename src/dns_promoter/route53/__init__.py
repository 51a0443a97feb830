"""Route53 hosted zone reads and root zone record upserts."""
