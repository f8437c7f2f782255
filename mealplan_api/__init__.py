"""
Meal plan customization API.

Lets subscribers adjust a pre-assembled weekly meal plan: swap proteins,
sauces and starches, toggle garnishes and veggies, and change how many
servings of each dish they receive.
"""

__version__ = "1.0.0"
