"""Apply LimitRange default requests and limits to pod containers."""
