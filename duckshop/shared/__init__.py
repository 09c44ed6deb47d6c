"""
Общие модели, разделяемые API и ботом.
"""
