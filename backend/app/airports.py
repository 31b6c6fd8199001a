# Domestic airports served by the watch list: IATA code -> (airport name, city)
AIRPORTS = {
    "SGN": ("Tân Sơn Nhất", "Hồ Chí Minh"),
    "HAN": ("Nội Bài", "Hà Nội"),
    "DAD": ("Đà Nẵng", "Đà Nẵng"),
    "CXR": ("Cam Ranh", "Nha Trang"),
    "PQC": ("Phú Quốc", "Phú Quốc"),
    "VCA": ("Cần Thơ", "Cần Thơ"),
    "HPH": ("Cát Bi", "Hải Phòng"),
    "VII": ("Vinh", "Vinh"),
    "HUI": ("Phú Bài", "Huế"),
    "UIH": ("Phù Cát", "Quy Nhơn"),
    "VDO": ("Vân Đồn", "Quảng Ninh"),
    "DLI": ("Liên Khương", "Đà Lạt"),
    "BMV": ("Buôn Ma Thuột", "Buôn Ma Thuột"),
    "VCS": ("Côn Đảo", "Côn Đảo"),
    "PXU": ("Pleiku", "Pleiku"),
    "TBB": ("Tuy Hòa", "Tuy Hòa"),
    "VCL": ("Chu Lai", "Quảng Nam"),
    "VKG": ("Rạch Giá", "Rạch Giá"),
    "CAH": ("Cà Mau", "Cà Mau"),
    "THD": ("Thọ Xuân", "Thanh Hóa"),
    "VDH": ("Đồng Hới", "Quảng Bình"),
}
