"""Segment export building blocks: arguments, cutting, concatenation, smart cut."""
