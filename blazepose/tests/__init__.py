"""Tests for the BlazePose pipeline package"""
