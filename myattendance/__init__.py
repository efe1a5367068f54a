"""
MyAttendance: personal course attendance tracker (local store + statistics).
"""
