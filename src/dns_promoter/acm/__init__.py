"""ACM certificate DNS validation lookup."""
