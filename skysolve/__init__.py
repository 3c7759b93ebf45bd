"""
skysolve: batch driver for solving the sky position of astronomical images
and source lists with external solving engines
"""
