"""Result rendering for the terminal and for machines (--json)."""
