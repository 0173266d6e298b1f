# DTDC strCode values
status_mapping = {
    "BKD": {"status": "booked", "sub_status": "booked"},
    "SOFTDATA": {"status": "booked", "sub_status": "booked"},
    "PCSC": {"status": "pickup", "sub_status": "pickup scheduled"},
    "PCAW": {"status": "pickup", "sub_status": "pickup scheduled"},
    "PCNA": {"status": "pickup", "sub_status": "pickup failed"},
    "PCUP": {"status": "in transit", "sub_status": "pickup completed"},
    "OBMN": {"status": "in transit", "sub_status": "in transit"},
    "IBMN": {"status": "in transit", "sub_status": "in transit"},
    "CDOUT": {"status": "in transit", "sub_status": "in transit"},
    "CDIN": {"status": "in transit", "sub_status": "in transit"},
    "INSCAN": {"status": "in transit", "sub_status": "reached destination hub"},
    "OUTDLV": {"status": "out for delivery", "sub_status": "out for delivery"},
    "DLV": {"status": "delivered", "sub_status": "delivered"},
    "NONDLV": {"status": "NDR", "sub_status": "NDR"},
    "RTO": {"status": "RTO", "sub_status": "RTO initiated"},
    "RTOBKD": {"status": "RTO", "sub_status": "RTO initiated"},
    "RTOOUTDLV": {"status": "RTO", "sub_status": "RTO out for delivery"},
    "RTODLV": {"status": "RTO", "sub_status": "RTO delivered"},
    "CAN": {"status": "cancelled", "sub_status": "cancelled"},
}
