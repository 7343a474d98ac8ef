"""Helpers that run git and interpret its output."""