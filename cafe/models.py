from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Boolean, DateTime, Text, ForeignKeyConstraint
from sqlalchemy.orm import relationship
from .db import Base

# Table and column names follow the existing cafe database schema so legacy
# databases can be opened after running the migration script.

class User(Base):
    __tablename__ = "Users"

    login = Column(String(50), primary_key=True)
    # passlib hash; legacy plaintext values are rehashed by the migration
    password = Column(String, nullable=False)
    phone_num = Column("phoneNum", String(16), nullable=True)
    fav_items = Column("favItems", Text, nullable=False, default="")
    # 'Customer', 'Employee' or 'Manager'
    type = Column(String(8), nullable=False, default="Customer", index=True)

    orders = relationship("Order", back_populates="user")


class MenuItem(Base):
    __tablename__ = "Menu"

    item_name = Column("itemName", String(50), primary_key=True)
    type = Column(String(20), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(String(400), nullable=False, default="")
    image_url = Column("imageURL", String(256), nullable=False, default="")


class Order(Base):
    __tablename__ = "Orders"

    orderid = Column(Integer, primary_key=True, autoincrement=True)
    login = Column(String(50), ForeignKey("Users.login"), nullable=False, index=True)
    paid = Column(Boolean, nullable=False, default=False)
    timestamp_received = Column("timeStampRecieved", DateTime(timezone=True), nullable=False, index=True)
    total = Column(Numeric(10, 2), nullable=False, default=0)

    user = relationship("User", back_populates="orders")
    items = relationship("ItemStatus", back_populates="order", order_by="ItemStatus.seq")


class ItemStatus(Base):
    __tablename__ = "ItemStatus"
    __table_args__ = (
        ForeignKeyConstraint(["orderid"], ["Orders.orderid"]),
        ForeignKeyConstraint(["itemName"], ["Menu.itemName"]),
    )

    orderid = Column(Integer, primary_key=True)
    item_name = Column("itemName", String(50), primary_key=True)
    last_updated = Column("lastUpdated", DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default="In progress")
    comments = Column(String(130), nullable=False, default="")
    # catalog price captured when the line was added
    price = Column(Numeric(10, 2), nullable=False)
    # monotonically increasing insertion counter, used for listing order
    seq = Column(Integer, nullable=False, index=True)

    order = relationship("Order", back_populates="items")
