"""Metrics calculation library: pure functions over fetched records"""
