import enum

class LocationType(str, enum.Enum):
    warehouse = "warehouse"
    branch = "branch"

class UnitOfMeasure(str, enum.Enum):
    pcs = "PCS"
    box = "BOX"
    pack = "PACK"
    kg = "KG"
    liter = "L"

class OrderStatus(str, enum.Enum):
    unread = "Unread"
    read = "Read"
    completed = "Completed"
    cancelled = "Cancelled"

class MovementType(str, enum.Enum):
    adjustment = "ADJUSTMENT"
    order_deduction = "ORDER_DEDUCTION"
    order_restock = "ORDER_RESTOCK"
    transfer_out = "TRANSFER_OUT"
    transfer_in = "TRANSFER_IN"
