"""Analytics over farmer call history"""
