# Ekart reports free text statuses; keys are lowercased
status_mapping = {
    "order placed": {"status": "booked", "sub_status": "booked"},
    "pickup scheduled": {"status": "pickup", "sub_status": "pickup scheduled"},
    "pickup not done": {"status": "pickup", "sub_status": "pickup failed"},
    "picked up": {"status": "in transit", "sub_status": "pickup completed"},
    "shipment picked up": {"status": "in transit", "sub_status": "pickup completed"},
    "in transit": {"status": "in transit", "sub_status": "in transit"},
    "received at hub": {"status": "in transit", "sub_status": "in transit"},
    "reached destination hub": {
        "status": "in transit",
        "sub_status": "reached destination hub",
    },
    "out for delivery": {"status": "out for delivery", "sub_status": "out for delivery"},
    "delivered": {"status": "delivered", "sub_status": "delivered"},
    "undelivered": {"status": "NDR", "sub_status": "NDR"},
    "delivery attempted": {"status": "NDR", "sub_status": "NDR"},
    "lost": {"status": "NDR", "sub_status": "lost"},
    "rto initiated": {"status": "RTO", "sub_status": "RTO initiated"},
    "rto in transit": {"status": "RTO", "sub_status": "RTO in transit"},
    "rto delivered": {"status": "RTO", "sub_status": "RTO delivered"},
    "cancelled": {"status": "cancelled", "sub_status": "cancelled"},
}
