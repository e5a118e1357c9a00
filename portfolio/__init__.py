"""Property portfolio management API"""
