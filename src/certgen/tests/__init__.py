"""Utilities for running certgen tests"""
