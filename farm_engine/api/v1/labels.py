"""
Display labels for opaque state identifiers.

The engine returns state ids only; the dashboard shows these labels.
"""
from farm_engine.domain.models import ControlMode, DeviceStatus, OrderStatus

DEVICE_STATUS_LABELS = {
    DeviceStatus.REGISTERED: "Terdaftar",
    DeviceStatus.PENDING_PAYMENT: "Menunggu Pembayaran",
    DeviceStatus.PENDING_SHIPMENT: "Menunggu Pengiriman",
    DeviceStatus.SHIPPING: "Dalam Pengiriman",
    DeviceStatus.DELIVERED: "Barang Diterima",
    DeviceStatus.PENDING_INSTALL_CONFIRMATION: "Menunggu Konfirmasi Pemasangan",
    DeviceStatus.ACTIVE: "Aktif",
    DeviceStatus.DEVICE_OFFLINE: "Belum Terkoneksi",
    DeviceStatus.DEVICE_ONLINE: "Online",
}

ORDER_STATUS_LABELS = {
    OrderStatus.PENDING_PAYMENT: "Menunggu Pembayaran",
    OrderStatus.PROCESSING: "Pesanan Diproses",
    OrderStatus.SHIPPING: "Dalam Pengiriman",
    OrderStatus.COMPLETED: "Selesai",
    OrderStatus.CANCELED: "Dibatalkan",
}

MODE_LABELS = {
    ControlMode.MANUAL: "Manual",
    ControlMode.AUTOMATIC: "Otomatis",
}

ECO_CATEGORY_LABELS = {
    "poor": "Buruk",
    "moderate": "Sedang",
    "good": "Baik",
}
