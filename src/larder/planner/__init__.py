"""Planning pipeline: unit conversion, recommendations, meal-plan demand, shopping."""
