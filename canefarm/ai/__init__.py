"""LLM call analysis"""
