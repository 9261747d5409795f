"""Starter checklist used when the content tables are empty."""

SEED_CATEGORIES = [
    {
        'key': 'beforeArrival',
        'display_name': 'Before Arrival',
        'description': 'Essential preparations before traveling to Germany',
        'icon': 'plane-departure',
        'color': '#3B82F6',
        'estimated_time_frame': 'Before departure',
    },
    {
        'key': 'uponArrival',
        'display_name': 'Upon Arrival',
        'description': 'Immediate tasks to complete when you arrive in Germany',
        'icon': 'location-pin',
        'color': '#10B981',
        'estimated_time_frame': 'First week',
    },
    {
        'key': 'firstWeeks',
        'display_name': 'First Weeks',
        'description': 'Getting settled and integrated into your new environment',
        'icon': 'calendar-days',
        'color': '#F59E0B',
        'estimated_time_frame': 'First month',
    },
    {
        'key': 'ongoing',
        'display_name': 'Ongoing',
        'description': 'Continuous tasks for long-term success in Germany',
        'icon': 'infinity',
        'color': '#8B5CF6',
        'estimated_time_frame': 'Ongoing',
    },
]


SEED_TASKS = [
    # Before Arrival
    {
        'key': 'find-accommodation',
        'category': 'beforeArrival',
        'title': 'Find accommodation',
        'description': (
            '<p>Secure accommodation early; the housing market is competitive. '
            'Options include student dormitories, shared flats (WG) and private apartments.</p>'
        ),
        'estimated_duration': '2-4 weeks',
        'difficulty': 'hard',
        'is_required': True,
        'tips': ['Never pay a deposit before seeing a contract', 'Ask for a Wohnungsgeberbestätigung'],
        'helpful_links': [
            {'title': 'WG-Gesucht', 'url': 'https://www.wg-gesucht.de', 'description': 'Shared flats'},
        ],
    },
    {
        'key': 'get-health-insurance',
        'category': 'beforeArrival',
        'title': 'Get health insurance',
        'description': '<p>Health insurance is mandatory for enrolment and for your residence permit.</p>',
        'estimated_duration': '1-2 hours',
        'difficulty': 'medium',
        'is_required': True,
    },
    {
        'key': 'book-flights',
        'category': 'beforeArrival',
        'title': 'Book flights',
        'description': '<p>Compare fares early and check baggage allowances for long stays.</p>',
        'estimated_duration': '1-2 hours',
        'difficulty': 'easy',
    },
    {
        'key': 'prepare-documents',
        'category': 'beforeArrival',
        'title': 'Prepare necessary documents',
        'description': (
            '<p>Passport, visa, admission letter, blocked account confirmation, insurance '
            'certificate and passport photos, with copies.</p>'
        ),
        'estimated_duration': '1 week',
        'difficulty': 'medium',
        'is_required': True,
        'requirements': ['Passport', 'Visa', 'Admission letter', 'Blocked account confirmation'],
    },
    # Upon Arrival
    {
        'key': 'airport-pickup',
        'category': 'uponArrival',
        'title': 'Airport pickup',
        'description': '<p>Arrange a pickup so your first hours in Germany are stress free.</p>',
        'estimated_duration': '1-2 hours',
        'difficulty': 'easy',
    },
    {
        'key': 'anmeldung',
        'category': 'uponArrival',
        'title': 'Anmeldung (Registration)',
        'description': '<p>Register your address at the Bürgeramt within 14 days of moving in.</p>',
        'estimated_duration': 'Half day',
        'difficulty': 'medium',
        'is_required': True,
        'requirements': ['Passport', 'Wohnungsgeberbestätigung', 'Registration form'],
    },
    {
        'key': 'open-bank-account',
        'category': 'uponArrival',
        'title': 'Open a bank account',
        'description': '<p>A German IBAN is needed for rent, salary and your blocked account payouts.</p>',
        'estimated_duration': '1-2 hours',
        'difficulty': 'medium',
    },
    {
        'key': 'get-sim-card',
        'category': 'uponArrival',
        'title': 'Get a SIM card',
        'description': '<p>Prepaid plans need ID verification; bring your passport.</p>',
        'estimated_duration': '30-60 minutes',
        'difficulty': 'easy',
    },
    # First Weeks
    {
        'key': 'university-registration',
        'category': 'firstWeeks',
        'title': 'Register at the university',
        'description': '<p>Complete enrolment and pay the semester contribution.</p>',
        'estimated_duration': 'Half day',
        'difficulty': 'medium',
        'is_required': True,
    },
    {
        'key': 'orientation-events',
        'category': 'firstWeeks',
        'title': 'Attend orientation events',
        'description': '<p>Orientation weeks are the fastest way to meet people and learn the campus.</p>',
        'estimated_duration': '2-3 days',
        'difficulty': 'easy',
    },
    {
        'key': 'explore-city',
        'category': 'firstWeeks',
        'title': 'Explore the city',
        'description': '<p>Learn public transport routes, supermarkets and your nearest Bürgeramt.</p>',
        'estimated_duration': 'Full day',
        'difficulty': 'easy',
    },
    # Ongoing
    {
        'key': 'manage-finances',
        'category': 'ongoing',
        'title': 'Manage finances',
        'description': '<p>Track monthly spending against your blocked account payout.</p>',
        'estimated_duration': '1-2 hours',
        'difficulty': 'medium',
    },
    {
        'key': 'maintain-visa-status',
        'category': 'ongoing',
        'title': 'Maintain visa status',
        'description': '<p>Book your residence permit appointment well before the visa expires.</p>',
        'estimated_duration': 'Half day',
        'difficulty': 'medium',
        'is_required': True,
    },
    {
        'key': 'access-healthcare',
        'category': 'ongoing',
        'title': 'Access healthcare services',
        'description': '<p>Find a general practitioner (Hausarzt) and keep your insurance card with you.</p>',
        'estimated_duration': '1-2 hours',
        'difficulty': 'medium',
    },
]
