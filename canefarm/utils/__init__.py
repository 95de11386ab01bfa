"""Utility helpers for CANEFARM"""
