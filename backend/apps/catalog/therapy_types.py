"""
Predefined therapy types.

Every series is tagged with one of these categories; analytics roll up
sessions per category. The posture lists are suggestions an instructor can
start a series from.
"""

THERAPY_TYPES = {
    "back_pain": {
        "id": "back_pain",
        "name": "Back Pain",
        "description": "Sequences to relieve lower and upper back pain",
        "duration": 25,
        "difficulty": "beginner",
        "postures": [
            {"id": "cat_cow", "name": "Cat-Cow", "duration": 3, "difficulty": "beginner"},
            {"id": "child_pose", "name": "Child's Pose", "duration": 5, "difficulty": "beginner"},
            {"id": "spinal_twist", "name": "Spinal Twist", "duration": 4, "difficulty": "intermediate"},
            {"id": "bridge_pose", "name": "Bridge Pose", "duration": 3, "difficulty": "beginner"},
        ],
    },
    "neck_pain": {
        "id": "neck_pain",
        "name": "Neck Pain",
        "description": "Gentle exercises to release cervical tension",
        "duration": 20,
        "difficulty": "beginner",
        "postures": [
            {"id": "neck_rolls", "name": "Neck Rolls", "duration": 2, "difficulty": "beginner"},
            {"id": "shoulder_shrugs", "name": "Shoulder Shrugs", "duration": 2, "difficulty": "beginner"},
            {"id": "eagle_arms", "name": "Eagle Arms", "duration": 3, "difficulty": "beginner"},
        ],
    },
    "stress_relief": {
        "id": "stress_relief",
        "name": "Stress Relief",
        "description": "Relaxing sequences to reduce stress and anxiety",
        "duration": 30,
        "difficulty": "beginner",
        "postures": [
            {"id": "deep_breathing", "name": "Deep Breathing", "duration": 5, "difficulty": "beginner"},
            {"id": "legs_up_wall", "name": "Legs Up the Wall", "duration": 10, "difficulty": "beginner"},
            {"id": "corpse_pose", "name": "Savasana", "duration": 15, "difficulty": "beginner"},
        ],
    },
    "flexibility": {
        "id": "flexibility",
        "name": "Flexibility",
        "description": "Improves overall body flexibility",
        "duration": 35,
        "difficulty": "intermediate",
        "postures": [
            {"id": "forward_fold", "name": "Forward Fold", "duration": 5, "difficulty": "intermediate"},
            {"id": "pigeon_pose", "name": "Pigeon Pose", "duration": 8, "difficulty": "intermediate"},
            {"id": "seated_twist", "name": "Seated Twist", "duration": 6, "difficulty": "beginner"},
        ],
    },
    "strength": {
        "id": "strength",
        "name": "Strength",
        "description": "Sequences that build body strength",
        "duration": 40,
        "difficulty": "intermediate",
        "postures": [
            {"id": "plank", "name": "Plank", "duration": 3, "difficulty": "intermediate"},
            {"id": "warrior_poses", "name": "Warrior Poses", "duration": 8, "difficulty": "intermediate"},
            {"id": "chair_pose", "name": "Chair Pose", "duration": 4, "difficulty": "intermediate"},
        ],
    },
}

THERAPY_TYPE_CHOICES = [(key, value["name"]) for key, value in THERAPY_TYPES.items()]


def list_therapy_types(difficulty=None, search=None):
    types = list(THERAPY_TYPES.values())
    if difficulty:
        types = [t for t in types if t["difficulty"] == difficulty]
    if search:
        term = search.lower()
        types = [
            t for t in types
            if term in t["name"].lower() or term in t["description"].lower()
        ]
    return types


def get_therapy_type(type_id):
    return THERAPY_TYPES.get(type_id)


def therapy_type_name(type_id):
    therapy_type = THERAPY_TYPES.get(type_id)
    return therapy_type["name"] if therapy_type else type_id
