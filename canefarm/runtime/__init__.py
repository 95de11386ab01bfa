"""Runtime services for CANEFARM"""
