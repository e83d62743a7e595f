"""Reservation booking services"""
