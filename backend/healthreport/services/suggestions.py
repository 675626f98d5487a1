"""
Rule-based health suggestions.

Each rule looks at the aggregated Summary and contributes at most one
message. Rules are independent: all of them are evaluated, and the
messages come back in rule order. The only exclusions are the "no data"
onboarding messages, which replace the rules that need at least one
workout or diet entry to evaluate.
"""

from healthreport.services.aggregation import Summary

# --- Thresholds ---
BMI_OVERWEIGHT = 25.0
BMI_UNDERWEIGHT = 18.5
MIN_SLEEP_HOURS = 7.0
MAX_RESTING_HEART_RATE = 100.0
MIN_WEEKLY_WORKOUTS = 3
MIN_WORKOUT_VARIETY = 3
MAX_DAILY_CALORIES = 2500.0
MIN_PROTEIN_GRAMS = 50.0
MIN_PROTEIN_SHARE = 0.20

KCAL_PER_GRAM_PROTEIN = 4
KCAL_PER_GRAM_CARBS = 4
KCAL_PER_GRAM_FAT = 4

# --- Messages ---
OVERWEIGHT_MESSAGE = (
    "Your BMI is above the healthy range. Consider a balanced diet with a "
    "moderate calorie deficit and regular cardio sessions."
)
UNDERWEIGHT_MESSAGE = (
    "Your BMI is below the healthy range. Consider adding nutrient-dense "
    "meals and strength training to build healthy weight."
)
LOW_SLEEP_MESSAGE = (
    "You are averaging less than 7 hours of sleep. Aim for 7-9 hours with "
    "a consistent bedtime to support recovery."
)
HIGH_HEART_RATE_MESSAGE = (
    "Your latest resting heart rate is above 100 bpm. If this persists, "
    "consider consulting a healthcare professional."
)
LOW_WORKOUT_FREQUENCY_MESSAGE = (
    "You logged fewer than 3 workouts in the past week. Try scheduling at "
    "least 3 sessions per week."
)
LOW_WORKOUT_VARIETY_MESSAGE = (
    "Your workouts cover fewer than 3 types. Mixing cardio, strength and "
    "flexibility work gives more balanced fitness."
)
NO_WORKOUTS_MESSAGE = (
    "No workouts logged yet. Start with 20-30 minutes of activity a few "
    "times a week and log each session."
)
HIGH_CALORIE_MESSAGE = (
    "Your average calorie intake is above 2500 kcal. Review portion sizes "
    "and favour whole, unprocessed foods."
)
LOW_PROTEIN_MESSAGE = (
    "Your average protein intake is below 50g. Add lean meats, fish, eggs, "
    "legumes or dairy to your meals."
)
LOW_PROTEIN_SHARE_MESSAGE = (
    "Protein provides less than 20% of your macronutrient calories. "
    "Shift some carbohydrate or fat calories towards protein."
)
NO_DIET_MESSAGE = (
    "No meals logged yet. Log your meals to get personalised nutrition "
    "suggestions."
)


def generate_suggestions(summary: Summary) -> list[str]:
    """Evaluate every rule against `summary` and collect the messages."""
    suggestions = []

    latest = summary.metrics.latest
    if latest is not None and latest.bmi is not None:
        if latest.bmi > BMI_OVERWEIGHT:
            suggestions.append(OVERWEIGHT_MESSAGE)
        elif latest.bmi < BMI_UNDERWEIGHT:
            suggestions.append(UNDERWEIGHT_MESSAGE)

    avg_sleep = summary.metrics.avg_sleep_hours
    if avg_sleep is not None and avg_sleep < MIN_SLEEP_HOURS:
        suggestions.append(LOW_SLEEP_MESSAGE)

    if latest is not None and latest.heart_rate is not None:
        if latest.heart_rate > MAX_RESTING_HEART_RATE:
            suggestions.append(HIGH_HEART_RATE_MESSAGE)

    workouts = summary.workouts
    if workouts.has_data:
        if workouts.recent_count < MIN_WEEKLY_WORKOUTS:
            suggestions.append(LOW_WORKOUT_FREQUENCY_MESSAGE)
        if workouts.distinct_types < MIN_WORKOUT_VARIETY:
            suggestions.append(LOW_WORKOUT_VARIETY_MESSAGE)
    else:
        suggestions.append(NO_WORKOUTS_MESSAGE)

    diet = summary.diet
    if diet.has_data:
        if diet.avg_calories is not None and diet.avg_calories > MAX_DAILY_CALORIES:
            suggestions.append(HIGH_CALORIE_MESSAGE)
        if diet.avg_protein is not None and diet.avg_protein < MIN_PROTEIN_GRAMS:
            suggestions.append(LOW_PROTEIN_MESSAGE)
        share = protein_calorie_share(summary)
        if share is not None and share < MIN_PROTEIN_SHARE:
            suggestions.append(LOW_PROTEIN_SHARE_MESSAGE)
    else:
        suggestions.append(NO_DIET_MESSAGE)

    return suggestions


def protein_calorie_share(summary: Summary):
    """Protein calories as a fraction of all macro calories.

    None when no macro calories were logged at all.
    """
    diet = summary.diet
    protein_kcal = diet.total_protein * KCAL_PER_GRAM_PROTEIN
    total_kcal = (
        protein_kcal
        + diet.total_carbs * KCAL_PER_GRAM_CARBS
        + diet.total_fat * KCAL_PER_GRAM_FAT
    )
    if total_kcal <= 0:
        return None
    return protein_kcal / total_kcal
