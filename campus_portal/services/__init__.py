"""
Services module - one service per collection plus analytics and the chatbot client.
"""
