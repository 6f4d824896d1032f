"""Dench workspace API: file mutations and live change notifications."""
