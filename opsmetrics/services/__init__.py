"""Orchestration services"""
