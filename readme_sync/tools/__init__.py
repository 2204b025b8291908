"""Tools a job uses against the repository host."""
