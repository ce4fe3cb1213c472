"""Skill request gateway with platform signature verification."""
