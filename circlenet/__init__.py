"""
Circlenet - circles, connections and guardian oversight for student profiles.
"""
