"""
Official scoring constants shared by the per-attempt and per-block calculators.

The practice bar is not the exam ratio applied to 12 questions: it is
ceil(23 / 36 * 12) = 8, so practice sets are proportionally stricter.
"""

OFFICIAL_TOTAL = 36
OFFICIAL_PASS_CORRECT = 23
PASS_PERCENT_36 = (OFFICIAL_PASS_CORRECT / OFFICIAL_TOTAL) * 100  # 63.89%

PRACTICE_TOTAL = 12
REQUIRED_CORRECT_12 = 8
PASS_PERCENT_12 = (REQUIRED_CORRECT_12 / PRACTICE_TOTAL) * 100  # 66.67%

PRACTICES_PER_BLOCK = OFFICIAL_TOTAL // PRACTICE_TOTAL
