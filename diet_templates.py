"""Static weekly meal templates used by the diet-plan generator."""
import copy
from datetime import date, timedelta


def _meal(name, time, calories, prep_time, ingredients, instructions, protein, carbs, fat, fiber):
    return {
        "name": name,
        "time": time,
        "calories": calories,
        "prep_time": prep_time,
        "ingredients": ingredients,
        "instructions": instructions,
        "nutrition": {"protein": protein, "carbs": carbs, "fat": fat, "fiber": fiber},
    }


WEEKLY_TEMPLATE = [
    {
        "day": "Monday",
        "meals": {
            "breakfast": _meal(
                "Antioxidant Berry Bowl", "8:00 AM", 420, "10 minutes",
                ["1 cup Greek yogurt (plain)", "1/2 cup mixed berries", "2 tbsp chia seeds",
                 "1 tbsp honey", "1/4 cup granola"],
                ["Add Greek yogurt to a bowl", "Top with berries and chia seeds",
                 "Drizzle with honey and sprinkle granola on top"],
                25, 45, 18, 12,
            ),
            "lunch": _meal(
                "Mediterranean Quinoa Salad", "12:30 PM", 520, "15 minutes",
                ["1 cup cooked quinoa", "1/2 cup cherry tomatoes", "1/2 cucumber, diced",
                 "2 oz feta cheese", "2 tbsp olive oil", "1 tbsp lemon juice"],
                ["Combine cooled quinoa and vegetables", "Whisk olive oil and lemon juice",
                 "Toss with dressing and top with feta"],
                18, 52, 22, 8,
            ),
            "dinner": _meal(
                "Baked Salmon with Sweet Potato", "7:00 PM", 650, "25 minutes",
                ["6 oz salmon fillet", "1 medium sweet potato", "2 cups broccoli florets",
                 "2 tbsp olive oil", "1 lemon, sliced"],
                ["Preheat oven to 400°F (200°C)", "Roast cubed sweet potato for 20 minutes",
                 "Bake salmon with lemon for 12-15 minutes, adding broccoli for the last 10"],
                42, 35, 28, 8,
            ),
            "snacks": [
                _meal("Green Tea & Almonds", "3:00 PM", 160, "2 minutes",
                      ["1 cup green tea", "15 almonds"], ["Brew tea for 3 minutes", "Enjoy with almonds"],
                      6, 6, 14, 4),
                _meal("Apple with Peanut Butter", "9:30 PM", 190, "2 minutes",
                      ["1 medium apple", "1 tbsp natural peanut butter"], ["Slice apple", "Serve with peanut butter"],
                      8, 25, 16, 6),
            ],
        },
        "health_benefits": [
            "Berries provide antioxidants that help protect cells",
            "Salmon is rich in omega-3 fatty acids",
            "Cruciferous vegetables like broccoli contain sulforaphane",
        ],
        "tips": ["Prep quinoa in bulk for the week", "Stay hydrated with 8 glasses of water"],
    },
    {
        "day": "Tuesday",
        "meals": {
            "breakfast": _meal(
                "Veggie Scramble with Avocado Toast", "8:00 AM", 450, "12 minutes",
                ["2 eggs", "1/2 cup spinach", "1/4 cup bell peppers", "1 slice whole grain bread",
                 "1/2 avocado"],
                ["Sauté vegetables until soft", "Add beaten eggs and scramble",
                 "Serve with mashed avocado on toast"],
                20, 28, 26, 12,
            ),
            "lunch": _meal(
                "Lentil and Vegetable Soup", "1:00 PM", 380, "30 minutes",
                ["1/2 cup dried lentils", "1 carrot, diced", "1 celery stalk, diced",
                 "2 cups vegetable broth", "1 tsp cumin"],
                ["Sauté carrot and celery", "Add lentils, broth and cumin",
                 "Simmer for 25 minutes until lentils are tender"],
                18, 48, 12, 16,
            ),
            "dinner": _meal(
                "Grilled Chicken with Roasted Vegetables", "7:30 PM", 580, "20 minutes",
                ["5 oz chicken breast", "1 zucchini", "1 cup cauliflower florets",
                 "1 tbsp olive oil", "1 tsp dried herbs"],
                ["Season chicken with herbs", "Grill chicken 6-7 minutes per side",
                 "Roast vegetables at 425°F for 20 minutes"],
                38, 22, 20, 6,
            ),
            "snacks": [
                _meal("Greek Yogurt with Berries", "10:00 AM", 150, "2 minutes",
                      ["1/2 cup Greek yogurt", "1/4 cup blueberries"], ["Top yogurt with berries"],
                      15, 18, 2, 4),
                _meal("Herbal Tea with Dark Chocolate", "8:00 PM", 120, "3 minutes",
                      ["1 cup chamomile tea", "1 square dark chocolate"], ["Steep tea", "Enjoy with chocolate"],
                      2, 12, 8, 3),
            ],
        },
        "health_benefits": [
            "Lentils provide plant protein and fiber",
            "Leafy greens supply folate",
            "Lean protein supports muscle maintenance",
        ],
        "tips": ["Make a double batch of soup and freeze half", "Swap chicken for tofu if preferred"],
    },
    {
        "day": "Wednesday",
        "meals": {
            "breakfast": _meal(
                "Overnight Oats with Nuts and Seeds", "7:45 AM", 410, "5 minutes (prep night before)",
                ["1/2 cup rolled oats", "1/2 cup almond milk", "1 tbsp flaxseed", "1 tbsp walnuts",
                 "1/2 banana"],
                ["Combine oats, milk and flaxseed in a jar", "Refrigerate overnight",
                 "Top with walnuts and banana"],
                14, 52, 18, 14,
            ),
            "lunch": _meal(
                "Turkey and Hummus Wrap", "12:45 PM", 480, "8 minutes",
                ["1 whole wheat tortilla", "3 oz sliced turkey", "2 tbsp hummus",
                 "1/2 cup mixed greens", "1/4 cup shredded carrots"],
                ["Spread hummus on tortilla", "Layer turkey and vegetables", "Roll tightly and slice"],
                32, 38, 16, 8,
            ),
            "dinner": _meal(
                "Baked Cod with Quinoa Pilaf", "7:15 PM", 590, "25 minutes",
                ["6 oz cod fillet", "3/4 cup quinoa", "1/2 cup peas", "1 tbsp olive oil",
                 "1 clove garlic"],
                ["Bake cod at 400°F for 12 minutes", "Cook quinoa with garlic and peas",
                 "Serve cod over pilaf"],
                36, 48, 20, 6,
            ),
            "snacks": [
                _meal("Celery with Almond Butter", "3:30 PM", 180, "3 minutes",
                      ["2 celery stalks", "1 tbsp almond butter"], ["Fill celery with almond butter"],
                      7, 12, 16, 5),
                _meal("Herbal Tea with Honey", "9:00 PM", 60, "3 minutes",
                      ["1 cup herbal tea", "1 tsp honey"], ["Steep tea and stir in honey"],
                      0, 16, 0, 0),
            ],
        },
        "health_benefits": [
            "Oats contain beta-glucan fiber",
            "Flaxseed provides lignans and omega-3s",
            "White fish is a lean, low-fat protein",
        ],
        "tips": ["Prepare several jars of oats at once", "Choose low-sodium deli turkey"],
    },
    {
        "day": "Thursday",
        "meals": {
            "breakfast": _meal(
                "Green Smoothie Bowl", "8:15 AM", 390, "8 minutes",
                ["1 cup spinach", "1 frozen banana", "1/2 cup mango", "1/2 cup almond milk",
                 "1 tbsp pumpkin seeds"],
                ["Blend spinach, fruit and milk until thick", "Pour into a bowl",
                 "Top with pumpkin seeds"],
                12, 45, 20, 10,
            ),
            "lunch": _meal(
                "Buddha Bowl with Tahini Dressing", "1:15 PM", 520, "20 minutes",
                ["1/2 cup brown rice", "1/2 cup chickpeas", "1 cup roasted vegetables",
                 "2 tbsp tahini", "1 tbsp lemon juice"],
                ["Arrange rice, chickpeas and vegetables in a bowl",
                 "Whisk tahini with lemon juice and water", "Drizzle dressing over bowl"],
                16, 58, 22, 14,
            ),
            "dinner": _meal(
                "Lean Beef Stir-fry with Brown Rice", "7:00 PM", 550, "15 minutes",
                ["4 oz lean beef strips", "1 cup broccoli", "1/2 red bell pepper",
                 "1 tbsp low-sodium soy sauce", "1/2 cup brown rice"],
                ["Stir-fry beef until browned", "Add vegetables and soy sauce",
                 "Serve over brown rice"],
                32, 42, 16, 6,
            ),
            "snacks": [
                _meal("Mixed Nuts and Dried Fruit", "10:30 AM", 170, "1 minute",
                      ["1 oz mixed nuts", "1 tbsp dried cranberries"], ["Portion into a small bowl"],
                      5, 16, 14, 3),
                _meal("Cucumber Water with Mint", "4:00 PM", 30, "2 minutes",
                      ["1/2 cucumber, sliced", "Fresh mint leaves", "Water"], ["Infuse water for 10 minutes"],
                      1, 7, 0, 1),
            ],
        },
        "health_benefits": [
            "Chickpeas provide fiber and plant protein",
            "Colorful vegetables offer diverse antioxidants",
            "Brown rice is a whole-grain energy source",
        ],
        "tips": ["Roast extra vegetables for tomorrow", "Freeze bananas for smoothies"],
    },
    {
        "day": "Friday",
        "meals": {
            "breakfast": _meal(
                "Protein Pancakes with Berry Compote", "8:30 AM", 460, "15 minutes",
                ["1/2 cup oat flour", "1 scoop protein powder", "1 egg", "1/2 cup mixed berries"],
                ["Mix flour, protein powder and egg into a batter", "Cook pancakes on a hot pan",
                 "Simmer berries into a compote and spoon over"],
                35, 42, 12, 8,
            ),
            "lunch": _meal(
                "Grilled Portobello and Goat Cheese Salad", "12:30 PM", 420, "12 minutes",
                ["2 portobello caps", "2 cups arugula", "1 oz goat cheese", "1 tbsp balsamic vinegar",
                 "1 tbsp olive oil"],
                ["Grill mushrooms 4 minutes per side", "Slice and arrange over arugula",
                 "Top with goat cheese and dress with balsamic"],
                16, 28, 28, 8,
            ),
            "dinner": _meal(
                "Herb-Crusted Pork Tenderloin with Sweet Potato Mash", "7:30 PM", 640, "30 minutes",
                ["5 oz pork tenderloin", "1 sweet potato", "1 tbsp Dijon mustard",
                 "1 tsp rosemary", "1 cup green beans"],
                ["Coat pork with mustard and herbs", "Roast at 400°F for 20-25 minutes",
                 "Mash boiled sweet potato and steam green beans"],
                40, 35, 18, 8,
            ),
            "snacks": [
                _meal("Avocado Toast Points", "3:45 PM", 220, "5 minutes",
                      ["1 slice whole grain bread", "1/4 avocado", "Pinch of chili flakes"],
                      ["Toast bread and cut into points", "Top with avocado and chili"],
                      6, 20, 15, 8),
                _meal("Golden Milk Latte", "8:30 PM", 150, "5 minutes",
                      ["1 cup oat milk", "1/2 tsp turmeric", "Pinch of black pepper", "1 tsp honey"],
                      ["Warm milk with turmeric and pepper", "Sweeten with honey"],
                      2, 20, 6, 1),
            ],
        },
        "health_benefits": [
            "Turmeric contains curcumin",
            "Mushrooms provide selenium and B vitamins",
            "Sweet potatoes are rich in beta-carotene",
        ],
        "tips": ["Make compote ahead and refrigerate", "Let pork rest 5 minutes before slicing"],
    },
    {
        "day": "Saturday",
        "meals": {
            "breakfast": _meal(
                "Weekend Veggie Frittata", "9:00 AM", 480, "20 minutes",
                ["4 eggs", "1/2 cup mushrooms", "1/2 cup spinach", "1/4 cup onion",
                 "1 oz parmesan"],
                ["Sauté vegetables in an oven-safe pan", "Pour in beaten eggs and cook until edges set",
                 "Finish under the broiler with parmesan"],
                28, 12, 32, 4,
            ),
            "lunch": _meal(
                "Asian-Style Lettuce Wraps", "1:30 PM", 450, "15 minutes",
                ["4 oz ground turkey", "Butter lettuce leaves", "1/4 cup water chestnuts",
                 "1 tbsp hoisin sauce", "1 tsp ginger"],
                ["Brown turkey with ginger", "Stir in water chestnuts and hoisin",
                 "Spoon into lettuce cups"],
                28, 18, 16, 4,
            ),
            "dinner": _meal(
                "Mediterranean Stuffed Bell Peppers", "7:00 PM", 580, "35 minutes",
                ["2 bell peppers", "4 oz lean ground beef", "1/2 cup cooked rice",
                 "1/2 cup diced tomatoes", "1 oz feta"],
                ["Mix beef, rice and tomatoes", "Stuff halved peppers",
                 "Bake at 375°F for 30 minutes and top with feta"],
                32, 38, 24, 8,
            ),
            "snacks": [
                _meal("Homemade Trail Mix", "11:00 AM", 200, "2 minutes",
                      ["Almonds", "Pumpkin seeds", "Dark chocolate chips", "Raisins"],
                      ["Combine and portion into 1/4 cup servings"],
                      6, 18, 16, 4),
                _meal("Coconut Water with Lime", "4:30 PM", 240, "2 minutes",
                      ["1 cup coconut water", "Juice of 1/2 lime"], ["Stir lime into chilled coconut water"],
                      2, 12, 0, 0),
            ],
        },
        "health_benefits": [
            "Eggs provide choline and high-quality protein",
            "Bell peppers are high in vitamin C",
            "Seeds add zinc and magnesium",
        ],
        "tips": ["Use leftover vegetables in the frittata", "Batch the trail mix for the week"],
    },
    {
        "day": "Sunday",
        "meals": {
            "breakfast": _meal(
                "Chia Pudding Parfait", "8:45 AM", 420, "5 minutes (prep night before)",
                ["3 tbsp chia seeds", "3/4 cup almond milk", "1/2 cup Greek yogurt",
                 "1/2 cup mixed berries"],
                ["Stir chia seeds into milk and refrigerate overnight",
                 "Layer pudding with yogurt and berries"],
                18, 48, 18, 16,
            ),
            "lunch": _meal(
                "Roasted Vegetable and Hummus Bowl", "1:00 PM", 460, "25 minutes",
                ["1 cup roasted root vegetables", "1/3 cup hummus", "1/2 cup farro",
                 "Handful of arugula"],
                ["Roast vegetables at 425°F", "Cook farro until tender",
                 "Assemble bowl with hummus and arugula"],
                14, 52, 20, 12,
            ),
            "dinner": _meal(
                "Herb-Baked Chicken Thighs with Roasted Root Vegetables", "6:45 PM", 620, "40 minutes",
                ["2 skinless chicken thighs", "1 parsnip", "1 carrot", "1 small beet",
                 "1 tbsp olive oil", "Fresh thyme"],
                ["Toss vegetables with oil and thyme", "Nestle chicken among vegetables",
                 "Bake at 400°F for 35 minutes"],
                38, 32, 22, 8,
            ),
            "snacks": [
                _meal("Matcha Latte with Oat Milk", "10:15 AM", 120, "5 minutes",
                      ["1 tsp matcha powder", "1 cup oat milk", "1 tsp honey"],
                      ["Whisk matcha with a little hot water", "Add heated oat milk and honey"],
                      3, 20, 3, 2),
                _meal("Dark Chocolate and Almonds", "8:00 PM", 200, "1 minute",
                      ["1 oz dark chocolate (70% cacao)", "10 almonds"], ["Enjoy slowly"],
                      5, 12, 16, 4),
            ],
        },
        "health_benefits": [
            "Chia seeds provide omega-3 fatty acids",
            "Root vegetables supply fiber and potassium",
            "Dark chocolate provides flavonoids for heart health",
        ],
        "tips": ["Prep chia pudding for the week ahead", "End the week with a relaxing herbal tea"],
    },
]


def _day_calories(meals: dict) -> int:
    total = meals["breakfast"]["calories"] + meals["lunch"]["calories"] + meals["dinner"]["calories"]
    return total + sum(s["calories"] for s in meals["snacks"])


def build_weekly_plan(start: date) -> list:
    """Return seven dated day plans starting at ``start``."""
    plan = []
    for offset, template in enumerate(WEEKLY_TEMPLATE):
        day = copy.deepcopy(template)
        day["date"] = (start + timedelta(days=offset)).isoformat()
        day["total_calories"] = _day_calories(day["meals"])
        plan.append(day)
    return plan
